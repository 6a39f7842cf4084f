# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2026 MuVeraAI Corporation
"""Tests for the in-process ledger backend and its program rules."""

from __future__ import annotations

import pytest

from blog_ledger.address import find_program_address, resolve
from blog_ledger.codec import AnchorCodec
from blog_ledger.errors import (
    ACCOUNT_ALREADY_IN_USE,
    ACCOUNT_DID_NOT_SERIALIZE,
    ACCOUNT_NOT_INITIALIZED,
    CONSTRAINT_SEEDS,
    REASON_BLOCKHASH_NOT_FOUND,
    REASON_MISSING_SIGNATURE,
    REASON_PROGRAM_NOT_FOUND,
    REASON_SIGNATURE_FAILURE,
    StoreRejection,
    SubmissionFailed,
)
from blog_ledger.operations import SignedOperation, build_operation
from blog_ledger.signer import Keypair
from blog_ledger.store.memory import INSTRUCTION_DID_NOT_DESERIALIZE, MemoryLedger
from blog_ledger.types import OperationKind, StorageAddress

codec = AnchorCodec()


async def signed_op(
    ledger: MemoryLedger,
    kind: OperationKind,
    address: StorageAddress,
    signer: Keypair,
    data: bytes,
) -> SignedOperation:
    operation = build_operation(
        kind, ledger.program_id, address, signer.identity, data, await ledger.recent_blockhash()
    )
    return SignedOperation(operation=operation, signatures=(signer.sign(operation.message_bytes()),))


async def create(ledger: MemoryLedger, owner: Keypair, title: str, description: str) -> StorageAddress:
    address = resolve("blog", owner.identity, title, ledger.program_id)
    await ledger.submit(await signed_op(ledger, "create", address, owner, codec.encode_create(title, description)))
    return address


# ---------------------------------------------------------------------------
# TestReads
# ---------------------------------------------------------------------------


class TestReads:
    @pytest.mark.asyncio
    async def test_program_presence_follows_deployment(self) -> None:
        ledger = MemoryLedger(deployed=False)
        assert await ledger.program_exists(ledger.program_id) is False
        ledger.deploy()
        assert await ledger.program_exists(ledger.program_id) is True
        ledger.undeploy()
        assert await ledger.program_exists(ledger.program_id) is False

    @pytest.mark.asyncio
    async def test_fetch_missing_account_returns_none(self, alice: Keypair) -> None:
        ledger = MemoryLedger()
        assert await ledger.fetch_account(resolve("blog", alice.identity, "Nope", ledger.program_id)) is None

    @pytest.mark.asyncio
    async def test_fetch_all_filters_by_discriminator(self, alice: Keypair, bob: Keypair) -> None:
        ledger = MemoryLedger()
        first = await create(ledger, alice, "Hello", "First post")
        second = await create(ledger, bob, "Hello", "Bob's post")

        matched = await ledger.fetch_all_by_type(ledger.program_id, codec.account_discriminator)
        assert [address for address, _data in matched] == [first, second]
        assert await ledger.fetch_all_by_type(ledger.program_id, bytes(8)) == []

    @pytest.mark.asyncio
    async def test_stored_account_is_owned_by_program(self, alice: Keypair) -> None:
        ledger = MemoryLedger()
        address = await create(ledger, alice, "Hello", "First post")
        account = await ledger.fetch_account(address)
        assert account is not None
        assert account.owner == ledger.program_id
        assert codec.decode_record(account.data).owner == alice.identity


# ---------------------------------------------------------------------------
# TestSubmission
# ---------------------------------------------------------------------------


class TestSubmission:
    @pytest.mark.asyncio
    async def test_confirm_reports_landing_slot(self, alice: Keypair) -> None:
        ledger = MemoryLedger()
        address = resolve("blog", alice.identity, "Hello", ledger.program_id)
        signed = await signed_op(ledger, "create", address, alice, codec.encode_create("Hello", "x"))
        await ledger.submit(signed)
        confirmation = await ledger.confirm(signed, timeout=1.0)
        assert confirmation.slot == ledger.slot == 1
        assert confirmation.address == address
        assert confirmation.operation == "create"

    @pytest.mark.asyncio
    async def test_resubmitting_same_operation_is_idempotent(self, alice: Keypair) -> None:
        ledger = MemoryLedger()
        address = resolve("blog", alice.identity, "Hello", ledger.program_id)
        signed = await signed_op(ledger, "create", address, alice, codec.encode_create("Hello", "x"))
        assert await ledger.submit(signed) == await ledger.submit(signed)
        assert ledger.slot == 1

    @pytest.mark.asyncio
    async def test_confirm_unknown_operation_fails(self, alice: Keypair) -> None:
        ledger = MemoryLedger()
        address = resolve("blog", alice.identity, "Hello", ledger.program_id)
        signed = await signed_op(ledger, "create", address, alice, codec.encode_create("Hello", "x"))
        with pytest.raises(SubmissionFailed, match="never submitted"):
            await ledger.confirm(signed, timeout=1.0)

    @pytest.mark.asyncio
    async def test_foreign_signature_is_rejected(self, alice: Keypair, bob: Keypair) -> None:
        ledger = MemoryLedger()
        address = resolve("blog", alice.identity, "Hello", ledger.program_id)
        operation = build_operation(
            "create", ledger.program_id, address, alice.identity,
            codec.encode_create("Hello", "x"), await ledger.recent_blockhash(),
        )
        forged = SignedOperation(operation=operation, signatures=(bob.sign(operation.message_bytes()),))
        with pytest.raises(StoreRejection) as exc_info:
            await ledger.submit(forged)
        assert exc_info.value.reason == REASON_SIGNATURE_FAILURE
        assert await ledger.fetch_account(address) is None

    @pytest.mark.asyncio
    async def test_missing_signature_is_rejected(self, alice: Keypair) -> None:
        ledger = MemoryLedger()
        address = resolve("blog", alice.identity, "Hello", ledger.program_id)
        operation = build_operation(
            "create", ledger.program_id, address, alice.identity,
            codec.encode_create("Hello", "x"), await ledger.recent_blockhash(),
        )
        with pytest.raises(StoreRejection) as exc_info:
            await ledger.submit(SignedOperation(operation=operation, signatures=()))
        assert exc_info.value.reason == REASON_MISSING_SIGNATURE

    @pytest.mark.asyncio
    async def test_unknown_blockhash_is_rejected(self, alice: Keypair) -> None:
        ledger = MemoryLedger()
        address = resolve("blog", alice.identity, "Hello", ledger.program_id)
        operation = build_operation(
            "create", ledger.program_id, address, alice.identity,
            codec.encode_create("Hello", "x"), bytes(32),
        )
        signed = SignedOperation(operation=operation, signatures=(alice.sign(operation.message_bytes()),))
        with pytest.raises(StoreRejection) as exc_info:
            await ledger.submit(signed)
        assert exc_info.value.reason == REASON_BLOCKHASH_NOT_FOUND


# ---------------------------------------------------------------------------
# TestProgramRules
# ---------------------------------------------------------------------------


class TestProgramRules:
    @pytest.mark.asyncio
    async def test_create_on_occupied_address(self, alice: Keypair) -> None:
        ledger = MemoryLedger()
        address = await create(ledger, alice, "Hello", "First post")
        with pytest.raises(StoreRejection) as exc_info:
            await create(ledger, alice, "Hello", "Second post")
        assert exc_info.value.code == ACCOUNT_ALREADY_IN_USE
        account = await ledger.fetch_account(address)
        assert codec.decode_record(account.data).description == "First post"

    @pytest.mark.asyncio
    async def test_update_of_absent_account(self, alice: Keypair) -> None:
        ledger = MemoryLedger()
        address = resolve("blog", alice.identity, "Nope", ledger.program_id)
        signed = await signed_op(ledger, "update", address, alice, codec.encode_update("Nope", "x"))
        with pytest.raises(StoreRejection) as exc_info:
            await ledger.submit(signed)
        assert exc_info.value.code == ACCOUNT_NOT_INITIALIZED

    @pytest.mark.asyncio
    async def test_update_by_other_owner_violates_seeds(self, alice: Keypair, bob: Keypair) -> None:
        ledger = MemoryLedger()
        address = await create(ledger, alice, "Hello", "First post")
        signed = await signed_op(ledger, "update", address, bob, codec.encode_update("Hello", "Hacked"))
        with pytest.raises(StoreRejection) as exc_info:
            await ledger.submit(signed)
        assert exc_info.value.code == CONSTRAINT_SEEDS
        account = await ledger.fetch_account(address)
        assert codec.decode_record(account.data).description == "First post"

    @pytest.mark.asyncio
    async def test_empty_title_create_lands(self, alice: Keypair) -> None:
        ledger = MemoryLedger()
        address, _bump = find_program_address([b"blog", alice.identity.raw, b""], ledger.program_id)
        await ledger.submit(await signed_op(ledger, "create", address, alice, codec.encode_create("", "x")))
        account = await ledger.fetch_account(address)
        assert account is not None
        assert codec.decode_record(account.data).title == ""

    @pytest.mark.asyncio
    async def test_overlong_title_seed_violates_seeds(self, alice: Keypair) -> None:
        ledger = MemoryLedger()
        address = resolve("blog", alice.identity, "Hello", ledger.program_id)
        signed = await signed_op(ledger, "create", address, alice, codec.encode_create("x" * 33, "x"))
        with pytest.raises(StoreRejection) as exc_info:
            await ledger.submit(signed)
        assert exc_info.value.code == CONSTRAINT_SEEDS
        assert await ledger.fetch_account(address) is None

    @pytest.mark.asyncio
    async def test_update_changes_only_description(self, alice: Keypair) -> None:
        ledger = MemoryLedger()
        address = await create(ledger, alice, "Hello", "First post")
        await ledger.submit(await signed_op(ledger, "update", address, alice, codec.encode_update("Hello", "Edited")))
        state = codec.decode_record((await ledger.fetch_account(address)).data)
        assert (state.title, state.description, state.owner) == ("Hello", "Edited", alice.identity)

    @pytest.mark.asyncio
    async def test_delete_closes_account(self, alice: Keypair) -> None:
        ledger = MemoryLedger()
        address = await create(ledger, alice, "Hello", "First post")
        await ledger.submit(await signed_op(ledger, "delete", address, alice, codec.encode_delete("Hello")))
        assert await ledger.fetch_account(address) is None

    @pytest.mark.asyncio
    async def test_oversized_description_does_not_serialize(self, alice: Keypair) -> None:
        ledger = MemoryLedger()
        address = resolve("blog", alice.identity, "Hello", ledger.program_id)
        signed = await signed_op(ledger, "create", address, alice, codec.encode_create("Hello", "x" * 501))
        with pytest.raises(StoreRejection) as exc_info:
            await ledger.submit(signed)
        assert exc_info.value.code == ACCOUNT_DID_NOT_SERIALIZE

    @pytest.mark.asyncio
    async def test_garbage_instruction_data(self, alice: Keypair) -> None:
        ledger = MemoryLedger()
        address = resolve("blog", alice.identity, "Hello", ledger.program_id)
        signed = await signed_op(ledger, "create", address, alice, b"\x00" * 12)
        with pytest.raises(StoreRejection) as exc_info:
            await ledger.submit(signed)
        assert exc_info.value.code == INSTRUCTION_DID_NOT_DESERIALIZE

    @pytest.mark.asyncio
    async def test_undeployed_program_rejects_operations(self, alice: Keypair) -> None:
        ledger = MemoryLedger(deployed=False)
        address = resolve("blog", alice.identity, "Hello", ledger.program_id)
        signed = await signed_op(ledger, "create", address, alice, codec.encode_create("Hello", "x"))
        with pytest.raises(StoreRejection) as exc_info:
            await ledger.submit(signed)
        assert exc_info.value.reason == REASON_PROGRAM_NOT_FOUND
