# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2026 MuVeraAI Corporation
"""Shared fixtures for blog-ledger tests."""

from __future__ import annotations

import asyncio

import pytest

from blog_ledger.client import RecordClient
from blog_ledger.config import ClientConfig
from blog_ledger.errors import StoreUnavailable
from blog_ledger.operations import SignedOperation
from blog_ledger.signer import Keypair, KeypairSigner
from blog_ledger.store.memory import MemoryLedger
from blog_ledger.types import Confirmation, PublicIdentity, StorageAddress


class InstrumentedLedger(MemoryLedger):
    """MemoryLedger that counts reads and can be made to fail or pause reads and confirmations."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.list_reads = 0
        self.account_reads = 0
        self.fail_reads = False
        self.fail_blockhash = False
        self.gate: asyncio.Event | None = None
        self.confirm_gate: asyncio.Event | None = None

    async def fetch_all_by_type(
        self,
        program_id: PublicIdentity,
        discriminator: bytes,
    ) -> list[tuple[StorageAddress, bytes]]:
        self.list_reads += 1
        if self.fail_reads:
            raise StoreUnavailable("ledger offline")
        result = await super().fetch_all_by_type(program_id, discriminator)
        if self.gate is not None:
            await self.gate.wait()
        return result

    async def fetch_account(self, address):
        self.account_reads += 1
        if self.fail_reads:
            raise StoreUnavailable("ledger offline")
        return await super().fetch_account(address)

    async def recent_blockhash(self) -> bytes:
        if self.fail_blockhash:
            raise StoreUnavailable("ledger offline")
        return await super().recent_blockhash()

    async def confirm(self, signed: SignedOperation, timeout: float) -> Confirmation:
        if self.confirm_gate is not None:
            await self.confirm_gate.wait()
        return await super().confirm(signed, timeout)


@pytest.fixture
def alice() -> Keypair:
    return Keypair.from_seed(bytes([1]) * 32)


@pytest.fixture
def bob() -> Keypair:
    return Keypair.from_seed(bytes([2]) * 32)


@pytest.fixture
def config() -> ClientConfig:
    return ClientConfig(endpoint="memory://ledger")


@pytest.fixture
def ledger() -> InstrumentedLedger:
    """A deployed in-process ledger with no records."""
    return InstrumentedLedger()


@pytest.fixture
def signer(alice: Keypair, bob: Keypair) -> KeypairSigner:
    return KeypairSigner(alice, bob)


@pytest.fixture
def client(config: ClientConfig, ledger: InstrumentedLedger, signer: KeypairSigner) -> RecordClient:
    return RecordClient(config, ledger, signer)
