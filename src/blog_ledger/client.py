# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2026 MuVeraAI Corporation

"""
RecordClient — primary entry point for reading and writing blog entries.

RecordClient coordinates four concerns:

1. Addressing: every record lives at the address derived from
   ``(namespace_tag, owner, title)``; the client never invents addresses.
2. Reads: list, single lookup and program presence, served from the query
   cache while fresh.
3. Writes: resolve, build, sign, submit, confirm.
4. Cache maintenance: after a confirmed write, invalidate and refetch every
   cached view that could contain the record. A failed write touches nothing.

Usage::

    from blog_ledger import ClientConfig, KeypairSigner, Keypair, MemoryLedger, RecordClient

    alice = Keypair.generate()
    client = RecordClient(ClientConfig(), MemoryLedger(), KeypairSigner(alice))

    await client.create("Hello", "First post", alice.identity)
    entries = await client.list_all()

Writes are fire-and-forget once submitted: cancelling the awaiting task during
submission or confirmation does not retract the operation. The list view and
the record's view are invalidated before the cancellation propagates, since the
write may still land. Nothing is retried automatically.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from pydantic import ValidationError

from blog_ledger.address import address_for
from blog_ledger.cache import CacheKey, QueryCache, Subscriber
from blog_ledger.codec import AnchorCodec, Codec, CodecError
from blog_ledger.config import ClientConfig
from blog_ledger.errors import (
    BlogLedgerError,
    InvalidDescription,
    InvalidKey,
    KeyMismatch,
    NotFound,
    StoreRejection,
    StoreUnavailable,
    SubmissionFailed,
    map_store_rejection,
)
from blog_ledger.operations import build_operation
from blog_ledger.signer import Signer
from blog_ledger.store.interface import RemoteStore
from blog_ledger.types import (
    Confirmation,
    LogicalKey,
    OperationKind,
    ProgramPresence,
    PublicIdentity,
    RecordEntry,
    RecordState,
    StorageAddress,
)

logger = logging.getLogger("blog_ledger.client")

QUERY_NAMESPACE: str = "blog"


def _identity(value: PublicIdentity | str) -> PublicIdentity:
    try:
        return PublicIdentity.model_validate(value)
    except ValidationError as exc:
        raise InvalidKey(f"Malformed owner identity {value!r}.") from exc


def _address(value: StorageAddress | str) -> StorageAddress:
    try:
        return StorageAddress.model_validate(value)
    except ValidationError as exc:
        raise InvalidKey(f"Malformed storage address {value!r}.") from exc


class RecordClient:
    """
    Stateful façade over a remote store for one record type.

    Parameters
    ----------
    config:
        Endpoint, program id and limits. Passed explicitly; there is no global
        "current cluster".
    store:
        The remote store backend (``RpcStore`` for a real cluster,
        ``MemoryLedger`` in-process).
    signer:
        Signs operations on behalf of the acting identity.
    codec:
        Account and instruction layout. Defaults to :class:`AnchorCodec`.
    cache:
        Query cache. Pass a shared instance to let several clients feed the
        same views; keys are namespaced by endpoint so they never collide.
    """

    def __init__(
        self,
        config: ClientConfig,
        store: RemoteStore,
        signer: Signer,
        codec: Codec | None = None,
        cache: QueryCache | None = None,
    ) -> None:
        self._config = config
        self._store = store
        self._signer = signer
        self._codec: Codec = codec or AnchorCodec()
        self._cache: QueryCache = cache if cache is not None else QueryCache()

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def cache(self) -> QueryCache:
        return self._cache

    # ------------------------------------------------------------------
    # Cache keys
    # ------------------------------------------------------------------

    def all_key(self) -> CacheKey:
        return (QUERY_NAMESPACE, "all", self._store.endpoint)

    def account_key(self, address: StorageAddress) -> CacheKey:
        return (QUERY_NAMESPACE, "account", self._store.endpoint, address)

    def program_key(self) -> CacheKey:
        return (QUERY_NAMESPACE, "program", self._store.endpoint)

    # ------------------------------------------------------------------
    # Addressing
    # ------------------------------------------------------------------

    def resolve(self, owner: PublicIdentity | str, title: str) -> StorageAddress:
        """Return the storage address for ``(owner, title)``; raises InvalidKey."""
        key = LogicalKey(owner=_identity(owner), title=title)
        return address_for(key, self._config)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_all(self, force: bool = False) -> list[RecordEntry]:
        """
        Return every live blog entry as ``(address, state)`` pairs.

        Order is the store's natural return order. An empty store yields an
        empty list; check :meth:`get_program_presence` to tell that apart from a
        program that is not deployed.
        """
        if not force:
            hit, value = self._cache.fresh_value(self.all_key())
            if hit:
                return list(value)
        return await self._load_all()

    async def get_one(self, address: StorageAddress | str, force: bool = False) -> RecordState:
        """
        Return the record at ``address``.

        Raises NotFound when no blog entry exists there, and StoreUnavailable
        when the store cannot be reached.
        """
        address = _address(address)
        if not force:
            hit, value = self._cache.fresh_value(self.account_key(address))
            if hit:
                return value
        return await self._load_one(address)

    async def find(self, owner: PublicIdentity | str, title: str) -> RecordState:
        """Look up a record by logical key with a single direct fetch."""
        return await self.get_one(self.resolve(owner, title))

    async def get_program_presence(self, force: bool = False) -> ProgramPresence:
        """Report whether the program is deployed on the active endpoint."""
        if not force:
            hit, value = self._cache.fresh_value(self.program_key())
            if hit:
                return value
        return await self._load_presence()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create(
        self,
        title: str,
        description: str,
        owner: PublicIdentity | str,
    ) -> Confirmation:
        """
        Create a record at ``resolve(owner, title)``.

        Raises InvalidKey, AlreadyExists, Rejected or SubmissionFailed.
        """
        owner = _identity(owner)
        address = self.resolve(owner, title)
        self._validate_description(description)
        data = self._codec.encode_create(title, description)
        return await self._execute("create", address, owner, data)

    async def update(
        self,
        address: StorageAddress | str,
        title: str,
        new_description: str,
        owner: PublicIdentity | str,
    ) -> Confirmation:
        """
        Replace the description of an existing record.

        ``address`` must be the one derived from ``(owner, title)``; a mismatch
        raises KeyMismatch without contacting the store. Otherwise raises
        NotFound, Unauthorized, Rejected or SubmissionFailed.
        """
        owner = _identity(owner)
        address = _address(address)
        expected = self.resolve(owner, title)
        if expected != address:
            raise KeyMismatch(address, expected)
        self._validate_description(new_description)
        data = self._codec.encode_update(title, new_description)
        return await self._execute("update", address, owner, data)

    async def delete(self, title: str, owner: PublicIdentity | str) -> Confirmation:
        """
        Close the record for ``(owner, title)``. The key may be created again
        afterwards. Raises NotFound, Unauthorized, Rejected or SubmissionFailed.
        """
        owner = _identity(owner)
        address = self.resolve(owner, title)
        data = self._codec.encode_delete(title)
        return await self._execute("delete", address, owner, data)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, key: CacheKey, callback: Subscriber) -> Callable[[], None]:
        """Call ``callback`` on every cache event for ``key``; returns an unsubscribe function."""
        return self._cache.subscribe(key, callback)

    def invalidate(self, key: CacheKey) -> None:
        self._cache.invalidate(key)

    async def refetch(self, key: CacheKey) -> object:
        """Re-run the query behind ``key`` and return its fresh result."""
        if len(key) < 3 or key[0] != QUERY_NAMESPACE or key[2] != self._store.endpoint:
            raise ValueError(f"{key!r} is not a query key of this client")
        if key[1] == "all":
            return await self._load_all()
        if key[1] == "account":
            return await self._load_one(key[3])
        if key[1] == "program":
            return await self._load_presence()
        raise ValueError(f"Unknown query kind {key[1]!r}")

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _validate_description(self, description: str) -> None:
        if not isinstance(description, str):
            raise InvalidKey(f"Description must be a string, got {type(description).__name__}.")
        length = len(description.encode("utf-8"))
        if length > self._config.max_description_bytes:
            raise InvalidDescription(length, self._config.max_description_bytes)

    async def _load_all(self) -> list[RecordEntry]:
        key = self.all_key()
        with self._cache.fetching(key) as generation:
            raw_accounts = await self._store.fetch_all_by_type(
                self._config.program_id, self._codec.account_discriminator
            )
            entries: list[RecordEntry] = []
            for address, data in raw_accounts:
                try:
                    entries.append((address, self._codec.decode_record(data)))
                except CodecError as exc:
                    logger.warning(
                        "skipping undecodable account",
                        extra={"address": str(address), "error": str(exc)},
                    )
            self._cache.set(key, tuple(entries), generation)
        return entries

    async def _load_one(self, address: StorageAddress) -> RecordState:
        key = self.account_key(address)
        with self._cache.fetching(key) as generation:
            account = await self._store.fetch_account(address)
            if account is None or account.owner != self._config.program_id:
                self._cache.remove(key)
                raise NotFound(address)
            try:
                state = self._codec.decode_record(account.data)
            except CodecError as exc:
                self._cache.remove(key)
                raise NotFound(address, f"Account at {address} is not a blog entry.") from exc
            self._cache.set(key, state, generation)
        return state

    async def _load_presence(self) -> ProgramPresence:
        key = self.program_key()
        with self._cache.fetching(key) as generation:
            exists = await self._store.program_exists(self._config.program_id)
            presence = ProgramPresence.PRESENT if exists else ProgramPresence.ABSENT
            self._cache.set(key, presence, generation)
        return presence

    async def _execute(
        self,
        kind: OperationKind,
        address: StorageAddress,
        owner: PublicIdentity,
        data: bytes,
    ) -> Confirmation:
        """Build, sign, submit and confirm one operation, then refresh the cache."""
        try:
            blockhash = await self._store.recent_blockhash()
        except StoreUnavailable as exc:
            raise SubmissionFailed(f"Could not prepare {kind}: {exc.message}") from exc

        operation = build_operation(kind, self._config.program_id, address, owner, data, blockhash)
        signed = await self._signer.sign(owner, operation)

        try:
            await self._store.submit(signed)
            confirmation = await self._store.confirm(signed, self._config.confirm_timeout)
        except StoreRejection as rejection:
            error = map_store_rejection(rejection, kind, address)
            logger.warning(
                "operation rejected",
                extra={"operation": kind, "address": str(address), "error_code": error.code},
            )
            raise error from rejection
        except SubmissionFailed as exc:
            logger.warning(
                "operation not confirmed",
                extra={"operation": kind, "address": str(address), "error": exc.message},
            )
            raise
        except asyncio.CancelledError:
            # The operation may still land; cached views must not stay fresh.
            self._cache.invalidate(self.all_key(), self.account_key(address))
            logger.warning(
                "operation cancelled before confirmation",
                extra={"operation": kind, "address": str(address), "signature": signed.signature},
            )
            raise

        logger.info(
            "operation confirmed",
            extra={"operation": kind, "address": str(address), "signature": confirmation.signature},
        )
        await self._refresh_after_write(kind, address)
        return confirmation

    async def _refresh_after_write(self, kind: OperationKind, address: StorageAddress) -> None:
        all_key = self.all_key()
        account_key = self.account_key(address)
        self._cache.invalidate(all_key, account_key)

        if kind == "delete":
            self._cache.remove(account_key)
        elif self._is_watched(account_key):
            await self._refetch_after_write(account_key)

        if self._is_watched(all_key):
            await self._refetch_after_write(all_key)

    def _is_watched(self, key: CacheKey) -> bool:
        return self._cache.get(key) is not None or self._cache.subscriber_count(key) > 0

    async def _refetch_after_write(self, key: CacheKey) -> None:
        # The write is confirmed at this point; a failed refresh leaves the entry stale.
        try:
            await self.refetch(key)
        except BlogLedgerError as exc:
            logger.warning(
                "refetch after write failed",
                extra={"cache_key": repr(key), "error_code": exc.code},
            )
