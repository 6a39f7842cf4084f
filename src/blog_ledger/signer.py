# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2026 MuVeraAI Corporation

"""
Signing capability consumed by the record client.

The client never touches key material. It hands an :class:`UnsignedOperation`
and the acting identity to a :class:`Signer` and gets back a
:class:`SignedOperation`, or :class:`~blog_ledger.errors.Rejected` when the
signer declines. Wallet integrations implement :class:`Signer`;
:class:`KeypairSigner` is the local ed25519 implementation used by scripts and
tests.
"""

from __future__ import annotations

import inspect
import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Awaitable, Callable, Union

import aiofiles
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric import ed25519

from blog_ledger.errors import Rejected
from blog_ledger.operations import SignedOperation, UnsignedOperation
from blog_ledger.types import PublicIdentity

SEED_LENGTH: int = 32

ApprovalHook = Callable[[PublicIdentity, UnsignedOperation], Union[bool, Awaitable[bool]]]


def verify_signature(identity: PublicIdentity, signature: bytes, message: bytes) -> bool:
    try:
        ed25519.Ed25519PublicKey.from_public_bytes(identity.raw).verify(signature, message)
    except InvalidSignature:
        return False
    return True


class Keypair:
    """An ed25519 keypair whose public key is a :class:`PublicIdentity`."""

    def __init__(self, private_key: ed25519.Ed25519PrivateKey) -> None:
        self._private_key = private_key
        self._identity = PublicIdentity(raw=private_key.public_key().public_bytes_raw())

    @classmethod
    def generate(cls) -> "Keypair":
        return cls(ed25519.Ed25519PrivateKey.generate())

    @classmethod
    def from_seed(cls, seed: bytes) -> "Keypair":
        if len(seed) != SEED_LENGTH:
            raise ValueError(f"Seed must be {SEED_LENGTH} bytes, got {len(seed)}")
        return cls(ed25519.Ed25519PrivateKey.from_private_bytes(seed))

    @classmethod
    def from_secret_key(cls, secret_key: bytes) -> "Keypair":
        """
        Load the 64-byte ``seed || public key`` form written by ledger wallets.

        Raises ValueError when the embedded public key does not match the seed.
        """
        if len(secret_key) != 2 * SEED_LENGTH:
            raise ValueError(f"Secret key must be {2 * SEED_LENGTH} bytes, got {len(secret_key)}")
        keypair = cls.from_seed(secret_key[:SEED_LENGTH])
        if keypair.identity.raw != secret_key[SEED_LENGTH:]:
            raise ValueError("Secret key public half does not match its seed")
        return keypair

    @property
    def identity(self) -> PublicIdentity:
        return self._identity

    def secret_key(self) -> bytes:
        return self._private_key.private_bytes_raw() + self._identity.raw

    def sign(self, message: bytes) -> bytes:
        return self._private_key.sign(message)

    @classmethod
    async def load(cls, path: str | Path) -> "Keypair":
        """Read a keypair file: a JSON array of the 64 secret key bytes."""
        async with aiofiles.open(Path(path), mode="r", encoding="utf-8") as file_handle:
            content = await file_handle.read()
        return cls.from_secret_key(bytes(json.loads(content)))

    async def save(self, path: str | Path) -> None:
        async with aiofiles.open(Path(path), mode="w", encoding="utf-8") as file_handle:
            await file_handle.write(json.dumps(list(self.secret_key())))

    def __repr__(self) -> str:
        return f"Keypair({self._identity.to_base58()!r})"


class Signer(ABC):
    """Contract for anything that can sign operations on behalf of an identity."""

    @abstractmethod
    async def sign(self, identity: PublicIdentity, operation: UnsignedOperation) -> SignedOperation:
        """
        Sign ``operation`` as ``identity``.

        Raises Rejected when the signer declines or cannot act as ``identity``.
        Implementations must not submit the operation.
        """
        ...


class KeypairSigner(Signer):
    """
    Signs with locally held keypairs.

    Parameters
    ----------
    keypairs:
        The keypairs this signer may use, looked up by identity.
    approve:
        Optional hook called before signing, standing in for a wallet's
        confirmation prompt. Returning False (or awaiting to False) rejects.
    """

    def __init__(self, *keypairs: Keypair, approve: ApprovalHook | None = None) -> None:
        self._keypairs: dict[PublicIdentity, Keypair] = {kp.identity: kp for kp in keypairs}
        self._approve = approve

    def add(self, keypair: Keypair) -> None:
        self._keypairs[keypair.identity] = keypair

    @property
    def identities(self) -> list[PublicIdentity]:
        return list(self._keypairs)

    async def sign(self, identity: PublicIdentity, operation: UnsignedOperation) -> SignedOperation:
        if identity not in operation.signer_keys():
            raise Rejected(f"{identity} is not a required signer of this {operation.kind}.")
        if self._approve is not None:
            approved = self._approve(identity, operation)
            if inspect.isawaitable(approved):
                approved = await approved
            if not approved:
                raise Rejected(f"Signing of {operation.kind} declined for {identity}.")

        signatures: list[bytes] = []
        message = operation.message_bytes()
        for key in operation.signer_keys():
            keypair = self._keypairs.get(key)
            if keypair is None:
                raise Rejected(f"No key available to sign as {key}.")
            signatures.append(keypair.sign(message))

        return SignedOperation(operation=operation, signatures=tuple(signatures))
