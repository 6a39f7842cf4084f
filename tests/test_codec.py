# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2026 MuVeraAI Corporation
"""Tests for the blog entry account and instruction layout."""

from __future__ import annotations

import hashlib

import pytest

from blog_ledger.codec import ACCOUNT_SPACE, AnchorCodec, CodecError, sighash
from blog_ledger.encoding import pack_string
from blog_ledger.signer import Keypair
from blog_ledger.types import RecordState


@pytest.fixture
def codec() -> AnchorCodec:
    return AnchorCodec()


# ---------------------------------------------------------------------------
# TestDiscriminators
# ---------------------------------------------------------------------------


class TestDiscriminators:
    def test_account_discriminator_is_sighash_of_type_name(self, codec: AnchorCodec) -> None:
        expected = hashlib.sha256(b"account:BlogEntryState").digest()[:8]
        assert codec.account_discriminator == expected

    def test_instruction_discriminators_are_global_sighashes(self, codec: AnchorCodec) -> None:
        assert codec.encode_delete("Hello")[:8] == hashlib.sha256(b"global:delete_blog").digest()[:8]
        assert sighash("global", "create_blog") != sighash("global", "update_blog")


# ---------------------------------------------------------------------------
# TestAccountLayout
# ---------------------------------------------------------------------------


class TestAccountLayout:
    def test_encoded_record_fills_account_space(self, codec: AnchorCodec, alice: Keypair) -> None:
        state = RecordState(title="Hello", description="First post", owner=alice.identity)
        data = codec.encode_record(state)
        assert len(data) == ACCOUNT_SPACE
        assert data[8:40] == alice.identity.raw
        assert data[40:49] == pack_string("Hello")

    def test_decode_ignores_trailing_padding(self, codec: AnchorCodec, alice: Keypair) -> None:
        state = RecordState(title="Hello", description="First post", owner=alice.identity)
        assert codec.decode_record(codec.encode_record(state)) == state

    def test_decode_accepts_unpadded_data(self, codec: AnchorCodec, alice: Keypair) -> None:
        data = codec.account_discriminator + alice.identity.raw + pack_string("T") + pack_string("D")
        assert codec.decode_record(data) == RecordState(title="T", description="D", owner=alice.identity)

    def test_wrong_discriminator_raises(self, codec: AnchorCodec, alice: Keypair) -> None:
        data = bytes(8) + alice.identity.raw + pack_string("T") + pack_string("D")
        with pytest.raises(CodecError, match="discriminator"):
            codec.decode_record(data)

    def test_truncated_owner_raises(self, codec: AnchorCodec) -> None:
        with pytest.raises(CodecError, match="owner"):
            codec.decode_record(codec.account_discriminator + bytes(10))

    def test_truncated_strings_raise(self, codec: AnchorCodec, alice: Keypair) -> None:
        data = codec.account_discriminator + alice.identity.raw + b"\xff\x00\x00\x00abc"
        with pytest.raises(CodecError, match="Malformed"):
            codec.decode_record(data)

    def test_oversized_record_raises(self, codec: AnchorCodec, alice: Keypair) -> None:
        state = RecordState(title="Hello", description="x" * 600, owner=alice.identity)
        with pytest.raises(CodecError, match="account space"):
            codec.encode_record(state)


# ---------------------------------------------------------------------------
# TestInstructions
# ---------------------------------------------------------------------------


class TestInstructions:
    def test_create_layout(self, codec: AnchorCodec) -> None:
        data = codec.encode_create("Hello", "First post")
        assert data == sighash("global", "create_blog") + pack_string("Hello") + pack_string("First post")

    def test_decode_update(self, codec: AnchorCodec) -> None:
        name, args = codec.decode_instruction(codec.encode_update("Hello", "Edited"))
        assert name == "update_blog"
        assert args == {"title": "Hello", "new_description": "Edited"}

    def test_decode_delete(self, codec: AnchorCodec) -> None:
        assert codec.decode_instruction(codec.encode_delete("Hello")) == ("delete_blog", {"title": "Hello"})

    def test_unknown_discriminator_raises(self, codec: AnchorCodec) -> None:
        with pytest.raises(CodecError, match="Unknown instruction"):
            codec.decode_instruction(bytes(8) + pack_string("Hello"))

    def test_missing_arguments_raise(self, codec: AnchorCodec) -> None:
        with pytest.raises(CodecError, match="create_blog"):
            codec.decode_instruction(sighash("global", "create_blog") + pack_string("Hello"))
