# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2026 MuVeraAI Corporation

"""
Volatile in-process ledger backend.

``MemoryLedger`` executes the blog program's rules against a dict of accounts:
signature verification, seed constraints, at-most-one record per logical key,
and the same native error codes a real cluster reports. Suitable for tests,
examples and offline development. Data is lost when the process exits.
"""

from __future__ import annotations

import hashlib

from blog_ledger.address import find_program_address
from blog_ledger.codec import AnchorCodec, Codec, CodecError
from blog_ledger.config import BLOG_PROGRAM_ID, DEFAULT_NAMESPACE_TAG, MAX_DESCRIPTION_BYTES, MAX_TITLE_BYTES
from blog_ledger.errors import (
    ACCOUNT_ALREADY_IN_USE,
    ACCOUNT_DID_NOT_SERIALIZE,
    ACCOUNT_NOT_INITIALIZED,
    ACCOUNT_NOT_SIGNER,
    CONSTRAINT_SEEDS,
    REASON_BLOCKHASH_NOT_FOUND,
    REASON_MISSING_SIGNATURE,
    REASON_PROGRAM_NOT_FOUND,
    REASON_SIGNATURE_FAILURE,
    InvalidKey,
    StoreRejection,
    SubmissionFailed,
)
from blog_ledger.operations import SignedOperation, UnsignedOperation
from blog_ledger.signer import verify_signature
from blog_ledger.store.interface import RemoteStore
from blog_ledger.types import AccountInfo, Confirmation, PublicIdentity, RecordState, StorageAddress

# Anchor's "instruction did not deserialize" error.
INSTRUCTION_DID_NOT_DESERIALIZE: int = 102

LOADER_ID: PublicIdentity = PublicIdentity.from_base58("BPFLoaderUpgradeab1e11111111111111111111111")

# Blockhashes older than this many slots are no longer accepted.
MAX_RECENT_BLOCKHASHES: int = 150


class MemoryLedger(RemoteStore):
    """
    In-memory, non-persistent RemoteStore that runs the blog program locally.

    Parameters
    ----------
    program_id:
        Program the ledger hosts. Defaults to the deployed blog program id.
    namespace_tag:
        First seed the program uses to derive record addresses.
    deployed:
        When False the program account is absent until :meth:`deploy` is called.
    """

    def __init__(
        self,
        program_id: PublicIdentity | str = BLOG_PROGRAM_ID,
        namespace_tag: str = DEFAULT_NAMESPACE_TAG,
        codec: Codec | None = None,
        endpoint: str = "memory://ledger",
        commitment: str = "confirmed",
        deployed: bool = True,
    ) -> None:
        self._program_id = PublicIdentity.model_validate(program_id)
        self._namespace_tag = namespace_tag
        self._codec: Codec = codec or AnchorCodec()
        self._endpoint = endpoint
        self._commitment = commitment
        self._accounts: dict[bytes, AccountInfo] = {}
        self._landed: dict[str, int] = {}
        self._recent_blockhashes: list[bytes] = []
        self._slot = 0
        if deployed:
            self.deploy()

    @property
    def endpoint(self) -> str:
        return self._endpoint

    @property
    def program_id(self) -> PublicIdentity:
        return self._program_id

    @property
    def slot(self) -> int:
        return self._slot

    def deploy(self) -> None:
        self._accounts[self._program_id.raw] = AccountInfo(data=b"", owner=LOADER_ID, executable=True)

    def undeploy(self) -> None:
        self._accounts.pop(self._program_id.raw, None)

    # ─── Reads ────────────────────────────────────────────────────────────────

    async def fetch_account(self, address: StorageAddress | PublicIdentity) -> AccountInfo | None:
        return self._accounts.get(address.raw)

    async def fetch_all_by_type(
        self,
        program_id: PublicIdentity,
        discriminator: bytes,
    ) -> list[tuple[StorageAddress, bytes]]:
        return [
            (StorageAddress(raw=raw), account.data)
            for raw, account in self._accounts.items()
            if account.owner == program_id
            and not account.executable
            and account.data.startswith(discriminator)
        ]

    async def program_exists(self, program_id: PublicIdentity) -> bool:
        account = self._accounts.get(program_id.raw)
        return account is not None and account.executable

    async def recent_blockhash(self) -> bytes:
        blockhash = hashlib.sha256(b"memory-ledger:%d" % self._slot).digest()
        if blockhash not in self._recent_blockhashes:
            self._recent_blockhashes.append(blockhash)
            del self._recent_blockhashes[:-MAX_RECENT_BLOCKHASHES]
        return blockhash

    # ─── Writes ───────────────────────────────────────────────────────────────

    async def submit(self, signed: SignedOperation) -> str:
        operation = signed.operation
        self._verify_signatures(signed)
        if operation.recent_blockhash not in self._recent_blockhashes:
            raise StoreRejection("Blockhash not found", reason=REASON_BLOCKHASH_NOT_FOUND)

        signature = signed.signature
        if signature in self._landed:
            return signature

        self._execute(operation)
        self._slot += 1
        self._landed[signature] = self._slot
        return signature

    async def confirm(self, signed: SignedOperation, timeout: float) -> Confirmation:
        slot = self._landed.get(signed.signature)
        if slot is None:
            raise SubmissionFailed(f"Operation {signed.signature} was never submitted to this ledger.")
        return Confirmation(
            signature=signed.signature,
            operation=signed.operation.kind,
            address=signed.operation.address,
            commitment=self._commitment,
            slot=slot,
        )

    # ─── Program execution ────────────────────────────────────────────────────

    def _verify_signatures(self, signed: SignedOperation) -> None:
        operation = signed.operation
        signers = operation.signer_keys()
        if len(signed.signatures) != len(signers):
            raise StoreRejection(
                f"Expected {len(signers)} signatures, got {len(signed.signatures)}",
                reason=REASON_MISSING_SIGNATURE,
            )
        message = operation.message_bytes()
        for key, signature in zip(signers, signed.signatures):
            if not verify_signature(key, signature, message):
                raise StoreRejection(f"Invalid signature for {key}", reason=REASON_SIGNATURE_FAILURE)

    def _execute(self, operation: UnsignedOperation) -> None:
        instruction = operation.instruction
        if instruction.program_id != self._program_id or self._program_id.raw not in self._accounts:
            raise StoreRejection(
                f"Program {instruction.program_id} is not deployed", reason=REASON_PROGRAM_NOT_FOUND
            )

        try:
            name, args = self._codec.decode_instruction(instruction.data)
        except CodecError as exc:
            raise StoreRejection(str(exc), code=INSTRUCTION_DID_NOT_DESERIALIZE) from exc

        entry_meta, owner_meta = instruction.accounts[0], instruction.accounts[1]
        owner = owner_meta.pubkey
        if not owner_meta.is_signer:
            raise StoreRejection(f"{owner} did not sign", code=ACCOUNT_NOT_SIGNER)

        existing = self._accounts.get(entry_meta.pubkey.raw)
        if name != "create_blog" and existing is None:
            raise StoreRejection(
                f"Account {entry_meta.pubkey} is not initialized", code=ACCOUNT_NOT_INITIALIZED
            )
        self._check_seeds(entry_meta.pubkey, owner, args["title"])

        if name == "create_blog":
            if existing is not None:
                raise StoreRejection(
                    f"Account {entry_meta.pubkey} already in use", code=ACCOUNT_ALREADY_IN_USE
                )
            state = RecordState(title=args["title"], description=args["description"], owner=owner)
            self._store_record(entry_meta.pubkey, state)
        elif name == "update_blog":
            current = self._codec.decode_record(existing.data)
            state = current.model_copy(update={"description": args["new_description"]})
            self._store_record(entry_meta.pubkey, state)
        else:
            del self._accounts[entry_meta.pubkey.raw]

    def _check_seeds(self, entry: PublicIdentity, owner: PublicIdentity, title: str) -> None:
        seeds = [self._namespace_tag.encode("utf-8"), owner.raw, title.encode("utf-8")]
        try:
            expected, _bump = find_program_address(seeds, self._program_id)
        except InvalidKey as exc:
            raise StoreRejection(str(exc), code=CONSTRAINT_SEEDS) from exc
        if expected.raw != entry.raw:
            raise StoreRejection(
                f"Seeds constraint violated for {entry}", code=CONSTRAINT_SEEDS
            )

    def _store_record(self, address: PublicIdentity, state: RecordState) -> None:
        if (
            len(state.title.encode("utf-8")) > MAX_TITLE_BYTES
            or len(state.description.encode("utf-8")) > MAX_DESCRIPTION_BYTES
        ):
            raise StoreRejection("Record exceeds account space", code=ACCOUNT_DID_NOT_SERIALIZE)
        self._accounts[address.raw] = AccountInfo(
            data=self._codec.encode_record(state),
            owner=self._program_id,
        )
