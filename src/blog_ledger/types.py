# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2026 MuVeraAI Corporation

"""
Shared type definitions for the blog-ledger package.

All models are frozen Pydantic v2 models. Identities and addresses are
hashable, so they can key the client-side cache directly.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from blog_ledger.encoding import b58encode, b58decode

KEY_LENGTH: int = 32

OperationKind = Literal["create", "update", "delete"]


class _Key32(BaseModel):
    """
    A 32-byte ledger key.

    Accepts raw bytes, a base58 string, or another key instance, so callers can
    write ``PublicIdentity.model_validate("6opp...")`` or pass strings wherever a
    key field is declared.
    """

    model_config = ConfigDict(frozen=True)

    raw: bytes

    @model_validator(mode="before")
    @classmethod
    def _coerce(cls, value: Any) -> Any:
        if isinstance(value, str):
            return {"raw": b58decode(value)}
        if isinstance(value, (bytes, bytearray)):
            return {"raw": bytes(value)}
        if isinstance(value, _Key32):
            return {"raw": value.raw}
        return value

    @field_validator("raw")
    @classmethod
    def _must_be_key_length(cls, value: bytes) -> bytes:
        if len(value) != KEY_LENGTH:
            raise ValueError(f"Expected {KEY_LENGTH} bytes, got {len(value)}")
        return value

    @classmethod
    def from_base58(cls, text: str):
        return cls.model_validate(text)

    def to_base58(self) -> str:
        return b58encode(self.raw)

    def __str__(self) -> str:
        return self.to_base58()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.to_base58()!r})"


class PublicIdentity(_Key32):
    """The public key of a signer (record owner) or a program."""


class StorageAddress(_Key32):
    """A program-derived account address. Never random, never stored."""


class LogicalKey(BaseModel):
    """Identifies a record independently of where it is stored."""

    model_config = ConfigDict(frozen=True)

    owner: PublicIdentity
    title: str


class RecordState(BaseModel):
    """
    The persisted payload of a blog entry account.

    ``title`` and ``owner`` participate in address derivation and are therefore
    immutable once the record exists; only ``description`` is ever updated.
    """

    model_config = ConfigDict(frozen=True)

    title: str
    description: str
    owner: PublicIdentity


RecordEntry = tuple[StorageAddress, RecordState]


class AccountInfo(BaseModel):
    """Raw account as returned by the remote store."""

    model_config = ConfigDict(frozen=True)

    data: bytes
    owner: PublicIdentity
    executable: bool = False
    lamports: int = 0


class Confirmation(BaseModel):
    """The store's acknowledgement that a submitted operation was included."""

    model_config = ConfigDict(frozen=True)

    signature: str
    operation: OperationKind
    address: StorageAddress
    commitment: str
    slot: int | None = None


class ProgramPresence(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"
