# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2026 MuVeraAI Corporation

"""
Operation payloads: what gets signed and what gets submitted.

An :class:`UnsignedOperation` holds one program instruction plus the recent
blockhash the ledger uses to expire stale submissions. Its ``message_bytes()``
is the exact byte string a signer signs. A :class:`SignedOperation` adds the
signatures and serialises to the legacy transaction wire format accepted by
``sendTransaction``.

Message layout::

    header            3 bytes (required sigs, read-only signed, read-only unsigned)
    account keys      compact-u16 count + 32 bytes each
    recent blockhash  32 bytes
    instructions      compact-u16 count, each: program index, account
                      indices, data (both compact-u16 prefixed)

Account keys are ordered writable signers, read-only signers, writable
non-signers, read-only non-signers, with the fee payer always first.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, field_validator

from blog_ledger.encoding import b58encode, encode_compact_u16
from blog_ledger.types import KEY_LENGTH, OperationKind, PublicIdentity, StorageAddress

SYSTEM_PROGRAM_ID: PublicIdentity = PublicIdentity(raw=bytes(KEY_LENGTH))

SIGNATURE_LENGTH: int = 64


class AccountMeta(BaseModel):
    model_config = ConfigDict(frozen=True)

    pubkey: PublicIdentity
    is_signer: bool = False
    is_writable: bool = False


class Instruction(BaseModel):
    model_config = ConfigDict(frozen=True)

    program_id: PublicIdentity
    accounts: tuple[AccountMeta, ...]
    data: bytes


class MessageHeader(BaseModel):
    model_config = ConfigDict(frozen=True)

    num_required_signatures: int
    num_readonly_signed: int
    num_readonly_unsigned: int


class UnsignedOperation(BaseModel):
    """A single-instruction operation awaiting signatures."""

    model_config = ConfigDict(frozen=True)

    kind: OperationKind
    address: StorageAddress
    fee_payer: PublicIdentity
    instruction: Instruction
    recent_blockhash: bytes

    @field_validator("recent_blockhash")
    @classmethod
    def _blockhash_length(cls, value: bytes) -> bytes:
        if len(value) != KEY_LENGTH:
            raise ValueError(f"recent_blockhash must be {KEY_LENGTH} bytes, got {len(value)}")
        return value

    def compile_accounts(self) -> tuple[list[PublicIdentity], MessageHeader]:
        """Return the ordered account key list and the matching header."""
        flags: dict[bytes, list[bool]] = {}

        def add(key: PublicIdentity, is_signer: bool, is_writable: bool) -> None:
            entry = flags.setdefault(key.raw, [False, False])
            entry[0] = entry[0] or is_signer
            entry[1] = entry[1] or is_writable

        add(self.fee_payer, True, True)
        for meta in self.instruction.accounts:
            add(meta.pubkey, meta.is_signer, meta.is_writable)
        add(self.instruction.program_id, False, False)

        # Stable sort keeps the fee payer first among writable signers.
        ordered = sorted(flags.items(), key=lambda item: (not item[1][0], not item[1][1]))
        keys = [PublicIdentity(raw=raw) for raw, _flag in ordered]

        header = MessageHeader(
            num_required_signatures=sum(1 for _raw, (signer, _w) in ordered if signer),
            num_readonly_signed=sum(1 for _raw, (signer, w) in ordered if signer and not w),
            num_readonly_unsigned=sum(1 for _raw, (signer, w) in ordered if not signer and not w),
        )
        return keys, header

    def signer_keys(self) -> list[PublicIdentity]:
        keys, header = self.compile_accounts()
        return keys[: header.num_required_signatures]

    def message_bytes(self) -> bytes:
        keys, header = self.compile_accounts()
        index_of = {key.raw: position for position, key in enumerate(keys)}

        out = bytearray(
            [header.num_required_signatures, header.num_readonly_signed, header.num_readonly_unsigned]
        )
        out += encode_compact_u16(len(keys))
        for key in keys:
            out += key.raw
        out += self.recent_blockhash

        instruction = self.instruction
        out += encode_compact_u16(1)
        out.append(index_of[instruction.program_id.raw])
        out += encode_compact_u16(len(instruction.accounts))
        out += bytes(index_of[meta.pubkey.raw] for meta in instruction.accounts)
        out += encode_compact_u16(len(instruction.data))
        out += instruction.data
        return bytes(out)


class SignedOperation(BaseModel):
    """An operation carrying one signature per required signer, in key order."""

    model_config = ConfigDict(frozen=True)

    operation: UnsignedOperation
    signatures: tuple[bytes, ...]

    @field_validator("signatures")
    @classmethod
    def _signature_lengths(cls, value: tuple[bytes, ...]) -> tuple[bytes, ...]:
        for signature in value:
            if len(signature) != SIGNATURE_LENGTH:
                raise ValueError(f"Signatures must be {SIGNATURE_LENGTH} bytes")
        return value

    @property
    def signature(self) -> str:
        """The transaction id: base58 of the fee payer's signature."""
        return b58encode(self.signatures[0])

    def wire_bytes(self) -> bytes:
        return encode_compact_u16(len(self.signatures)) + b"".join(self.signatures) + self.operation.message_bytes()


def build_operation(
    kind: OperationKind,
    program_id: PublicIdentity,
    address: StorageAddress,
    owner: PublicIdentity,
    data: bytes,
    recent_blockhash: bytes,
) -> UnsignedOperation:
    """
    Assemble a blog program operation.

    Every instruction takes the same accounts: the record (writable), the owner
    (writable signer, also the fee payer) and the system program. Sending the
    owner as signer is how the store learns the acting identity.
    """
    instruction = Instruction(
        program_id=program_id,
        accounts=(
            AccountMeta(pubkey=PublicIdentity(raw=address.raw), is_writable=True),
            AccountMeta(pubkey=owner, is_signer=True, is_writable=True),
            AccountMeta(pubkey=SYSTEM_PROGRAM_ID),
        ),
        data=data,
    )
    return UnsignedOperation(
        kind=kind,
        address=address,
        fee_payer=owner,
        instruction=instruction,
        recent_blockhash=recent_blockhash,
    )
