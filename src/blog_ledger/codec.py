# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2026 MuVeraAI Corporation

"""
Binary layout of blog entry accounts and instructions.

The layout is fixed by the on-ledger program and treated as an external
schema: the rest of the package only talks to the :class:`Codec` interface.
:class:`AnchorCodec` implements the layout the deployed program uses:

- account data: 8-byte discriminator, owner (32 bytes), title, description
- instruction data: 8-byte discriminator followed by the borsh-encoded args

Discriminators are the first 8 bytes of SHA-256 over ``"account:<Type>"`` or
``"global:<instruction>"``.
"""

from __future__ import annotations

import hashlib
from abc import ABC, abstractmethod
from typing import Any

from blog_ledger.config import MAX_DESCRIPTION_BYTES, MAX_TITLE_BYTES
from blog_ledger.encoding import pack_string, unpack_string
from blog_ledger.types import KEY_LENGTH, PublicIdentity, RecordState

DISCRIMINATOR_SIZE: int = 8

ACCOUNT_TYPE_NAME: str = "BlogEntryState"

# Discriminator + owner + two length-prefixed strings at their maximum sizes.
ACCOUNT_SPACE: int = DISCRIMINATOR_SIZE + KEY_LENGTH + 4 + MAX_TITLE_BYTES + 4 + MAX_DESCRIPTION_BYTES

INSTRUCTION_ARGS: dict[str, tuple[str, ...]] = {
    "create_blog": ("title", "description"),
    "update_blog": ("title", "new_description"),
    "delete_blog": ("title",),
}


def sighash(namespace: str, name: str) -> bytes:
    return hashlib.sha256(f"{namespace}:{name}".encode("utf-8")).digest()[:DISCRIMINATOR_SIZE]


class CodecError(ValueError):
    """Raised when bytes do not match the expected layout."""


class Codec(ABC):
    """Translates between ledger bytes and blog-ledger types."""

    @property
    @abstractmethod
    def account_discriminator(self) -> bytes:
        """Prefix shared by every blog entry account; used to scan by type."""
        ...

    @abstractmethod
    def decode_record(self, data: bytes) -> RecordState:
        ...

    @abstractmethod
    def encode_record(self, state: RecordState) -> bytes:
        ...

    @abstractmethod
    def encode_create(self, title: str, description: str) -> bytes:
        ...

    @abstractmethod
    def encode_update(self, title: str, new_description: str) -> bytes:
        ...

    @abstractmethod
    def encode_delete(self, title: str) -> bytes:
        ...

    @abstractmethod
    def decode_instruction(self, data: bytes) -> tuple[str, dict[str, Any]]:
        """Return ``(instruction_name, args)`` for raw instruction data."""
        ...


class AnchorCodec(Codec):
    """Codec for the deployed blog program's account and instruction layout."""

    def __init__(self) -> None:
        self._account_discriminator = sighash("account", ACCOUNT_TYPE_NAME)
        self._instructions_by_discriminator: dict[bytes, str] = {
            sighash("global", name): name for name in INSTRUCTION_ARGS
        }

    @property
    def account_discriminator(self) -> bytes:
        return self._account_discriminator

    # ─── Accounts ─────────────────────────────────────────────────────────────

    def decode_record(self, data: bytes) -> RecordState:
        """
        Decode account data into a RecordState.

        Accounts are allocated at full size, so trailing zero padding after the
        description is expected and ignored.
        """
        if data[:DISCRIMINATOR_SIZE] != self._account_discriminator:
            raise CodecError("Account data does not start with the blog entry discriminator.")
        offset = DISCRIMINATOR_SIZE
        if len(data) < offset + KEY_LENGTH:
            raise CodecError("Account data truncated before owner field.")
        owner = PublicIdentity(raw=data[offset : offset + KEY_LENGTH])
        offset += KEY_LENGTH
        try:
            title, offset = unpack_string(data, offset)
            description, offset = unpack_string(data, offset)
        except (ValueError, UnicodeDecodeError) as exc:
            raise CodecError(f"Malformed blog entry account: {exc}") from exc
        return RecordState(title=title, description=description, owner=owner)

    def encode_record(self, state: RecordState) -> bytes:
        body = (
            self._account_discriminator
            + state.owner.raw
            + pack_string(state.title)
            + pack_string(state.description)
        )
        if len(body) > ACCOUNT_SPACE:
            raise CodecError(f"Record needs {len(body)} bytes; account space is {ACCOUNT_SPACE}.")
        return body + b"\x00" * (ACCOUNT_SPACE - len(body))

    # ─── Instructions ─────────────────────────────────────────────────────────

    def _encode_instruction(self, name: str, *args: str) -> bytes:
        return sighash("global", name) + b"".join(pack_string(arg) for arg in args)

    def encode_create(self, title: str, description: str) -> bytes:
        return self._encode_instruction("create_blog", title, description)

    def encode_update(self, title: str, new_description: str) -> bytes:
        return self._encode_instruction("update_blog", title, new_description)

    def encode_delete(self, title: str) -> bytes:
        return self._encode_instruction("delete_blog", title)

    def decode_instruction(self, data: bytes) -> tuple[str, dict[str, Any]]:
        name = self._instructions_by_discriminator.get(data[:DISCRIMINATOR_SIZE])
        if name is None:
            raise CodecError("Unknown instruction discriminator.")
        args: dict[str, Any] = {}
        offset = DISCRIMINATOR_SIZE
        try:
            for field in INSTRUCTION_ARGS[name]:
                args[field], offset = unpack_string(data, offset)
        except (ValueError, UnicodeDecodeError) as exc:
            raise CodecError(f"Malformed {name} instruction: {exc}") from exc
        return name, args
