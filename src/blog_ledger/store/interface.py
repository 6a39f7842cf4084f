# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2026 MuVeraAI Corporation

"""
Abstract base class that every remote store backend must implement.

The remote store is the single source of truth. Backends report failures of
submitted operations as :class:`~blog_ledger.errors.StoreRejection` with the
ledger's native error code; they never translate codes into the client
taxonomy themselves.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from blog_ledger.operations import SignedOperation
from blog_ledger.types import AccountInfo, Confirmation, PublicIdentity, StorageAddress


class RemoteStore(ABC):
    """
    Contract for ledger access backends.

    Reads raise :class:`~blog_ledger.errors.StoreUnavailable` when the store
    cannot be reached. Writes are two-phase: ``submit`` hands the signed
    operation over (after which it cannot be retracted) and ``confirm`` waits for
    inclusion.
    """

    @property
    @abstractmethod
    def endpoint(self) -> str:
        """Identifies the backing cluster; part of every cache key."""
        ...

    @abstractmethod
    async def fetch_account(self, address: StorageAddress | PublicIdentity) -> AccountInfo | None:
        """Return the account at ``address`` or None when no account exists."""
        ...

    @abstractmethod
    async def fetch_all_by_type(
        self,
        program_id: PublicIdentity,
        discriminator: bytes,
    ) -> list[tuple[StorageAddress, bytes]]:
        """
        Return every account owned by ``program_id`` whose data starts with
        ``discriminator``, in the store's natural order.
        """
        ...

    @abstractmethod
    async def program_exists(self, program_id: PublicIdentity) -> bool:
        """Return True when an executable program is deployed at ``program_id``."""
        ...

    @abstractmethod
    async def recent_blockhash(self) -> bytes:
        """Return a 32-byte blockhash to anchor the next operation."""
        ...

    @abstractmethod
    async def submit(self, signed: SignedOperation) -> str:
        """
        Hand a signed operation to the store and return its signature.

        Raises StoreRejection when the store refuses it outright (including
        preflight execution failures) and SubmissionFailed on transport errors.
        """
        ...

    @abstractmethod
    async def confirm(self, signed: SignedOperation, timeout: float) -> Confirmation:
        """
        Wait until ``signed`` reaches the configured commitment.

        Raises StoreRejection when the operation landed but failed, and
        SubmissionFailed when it is not confirmed within ``timeout`` seconds.
        """
        ...

    async def aclose(self) -> None:
        """Release any held resources. The default backend holds none."""
        return None
