# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2026 MuVeraAI Corporation
"""
blog-ledger — async client for blog entries stored on a ledger.

Every record lives at an address derived from ``(owner, title)``, so a
lookup by logical key is a single direct fetch. Writes are signed by the
owner and confirmed by the store before the client's cache is refreshed.

Quick start::

    import asyncio
    from blog_ledger import ClientConfig, Keypair, KeypairSigner, MemoryLedger, RecordClient

    alice = Keypair.generate()
    client = RecordClient(ClientConfig(), MemoryLedger(), KeypairSigner(alice))

    async def main() -> None:
        await client.create("Hello", "First post", alice.identity)
        for address, state in await client.list_all():
            print(address, state.title, state.description)

    asyncio.run(main())
"""
from __future__ import annotations

from blog_ledger.address import find_program_address, is_on_curve, resolve
from blog_ledger.cache import CacheEntry, CacheEvent, QueryCache
from blog_ledger.client import RecordClient
from blog_ledger.codec import AnchorCodec, Codec, CodecError
from blog_ledger.config import BLOG_PROGRAM_ID, CLUSTER_ENDPOINTS, ClientConfig
from blog_ledger.errors import (
    AlreadyExists,
    BlogLedgerError,
    ConfigurationError,
    InvalidDescription,
    InvalidKey,
    KeyMismatch,
    NotFound,
    Rejected,
    StoreRejection,
    StoreUnavailable,
    SubmissionFailed,
    Unauthorized,
)
from blog_ledger.operations import SignedOperation, UnsignedOperation, build_operation
from blog_ledger.signer import Keypair, KeypairSigner, Signer
from blog_ledger.store import MemoryLedger, RemoteStore, RpcStore
from blog_ledger.types import (
    AccountInfo,
    Confirmation,
    LogicalKey,
    ProgramPresence,
    PublicIdentity,
    RecordEntry,
    RecordState,
    StorageAddress,
)

__version__ = "0.1.0"

__all__ = [
    # Core types
    "PublicIdentity",
    "StorageAddress",
    "LogicalKey",
    "RecordState",
    "RecordEntry",
    "AccountInfo",
    "Confirmation",
    "ProgramPresence",
    # Configuration
    "ClientConfig",
    "BLOG_PROGRAM_ID",
    "CLUSTER_ENDPOINTS",
    # Addressing
    "resolve",
    "find_program_address",
    "is_on_curve",
    # Client
    "RecordClient",
    # Cache
    "QueryCache",
    "CacheEntry",
    "CacheEvent",
    # Codec and operations
    "Codec",
    "AnchorCodec",
    "CodecError",
    "UnsignedOperation",
    "SignedOperation",
    "build_operation",
    # Signing
    "Signer",
    "Keypair",
    "KeypairSigner",
    # Stores
    "RemoteStore",
    "MemoryLedger",
    "RpcStore",
    # Errors
    "BlogLedgerError",
    "InvalidKey",
    "InvalidDescription",
    "NotFound",
    "AlreadyExists",
    "KeyMismatch",
    "Unauthorized",
    "Rejected",
    "SubmissionFailed",
    "StoreUnavailable",
    "ConfigurationError",
    "StoreRejection",
]
