# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2026 MuVeraAI Corporation

"""
JSON-RPC remote store backend.

Talks to a ledger RPC node over HTTP using a single ``httpx.AsyncClient``:

- ``getAccountInfo`` / ``getProgramAccounts`` for reads (base64 encoded data)
- ``getLatestBlockhash`` to anchor new operations
- ``sendTransaction`` with preflight to submit
- ``getSignatureStatuses`` polled until the configured commitment is reached

Usage::

    async with RpcStore("https://api.devnet.solana.com") as store:
        client = RecordClient(config, store, signer)
        entries = await client.list_all()
"""

from __future__ import annotations

import asyncio
import base64
import logging
import time
from typing import Any

import httpx

from blog_ledger.config import ClientConfig
from blog_ledger.encoding import b58decode, b58encode
from blog_ledger.errors import (
    REASON_SIGNATURE_FAILURE,
    StoreRejection,
    StoreUnavailable,
    SubmissionFailed,
)
from blog_ledger.operations import SignedOperation
from blog_ledger.store.interface import RemoteStore
from blog_ledger.types import AccountInfo, Confirmation, PublicIdentity, StorageAddress

logger = logging.getLogger("blog_ledger.store.rpc")

COMMITMENT_RANK: dict[str, int] = {"processed": 0, "confirmed": 1, "finalized": 2}

# JSON-RPC error code for "Transaction signature verification failure".
RPC_SIGNATURE_VERIFICATION_FAILURE: int = -32003

# Raised while reading a result that does not have the documented shape.
MALFORMED_RESULT_ERRORS = (KeyError, IndexError, TypeError, AttributeError, ValueError)


def rejection_from_transaction_error(err: Any, message: str) -> StoreRejection:
    """
    Build a StoreRejection from a transaction error value.

    Shapes handled::

        "BlockhashNotFound"
        {"InstructionError": [0, {"Custom": 3012}]}
        {"InstructionError": [0, "MissingRequiredSignature"]}
    """
    if isinstance(err, str):
        return StoreRejection(message, reason=err)
    if isinstance(err, dict) and "InstructionError" in err:
        _index, detail = err["InstructionError"]
        if isinstance(detail, dict) and "Custom" in detail:
            return StoreRejection(message, code=int(detail["Custom"]))
        if isinstance(detail, str):
            return StoreRejection(message, reason=detail)
    return StoreRejection(f"{message}: {err!r}")


def rejection_from_rpc_error(error: dict[str, Any]) -> StoreRejection:
    message = str(error.get("message", "RPC error"))
    if error.get("code") == RPC_SIGNATURE_VERIFICATION_FAILURE:
        return StoreRejection(message, reason=REASON_SIGNATURE_FAILURE)
    data = error.get("data")
    err = data.get("err") if isinstance(data, dict) else None
    if err is None:
        return StoreRejection(message)
    return rejection_from_transaction_error(err, message)


def _account_from_json(value: dict[str, Any]) -> AccountInfo:
    encoded, _encoding = value["data"]
    return AccountInfo(
        data=base64.b64decode(encoded),
        owner=PublicIdentity.from_base58(value["owner"]),
        executable=bool(value.get("executable", False)),
        lamports=int(value.get("lamports", 0)),
    )


def _first_status(result: Any) -> dict[str, Any] | None:
    if result is None:
        return None
    try:
        status = result["value"][0]
    except MALFORMED_RESULT_ERRORS as exc:
        raise StoreUnavailable(f"getSignatureStatuses returned a malformed result: {exc!r}") from exc
    if status is not None and not isinstance(status, dict):
        raise StoreUnavailable(f"getSignatureStatuses returned a malformed status: {status!r}")
    return status


class RpcStore(RemoteStore):
    """
    RemoteStore backed by a ledger JSON-RPC endpoint.

    Parameters
    ----------
    endpoint:
        RPC URL.
    commitment:
        Commitment used for reads and required for confirmation.
    request_timeout:
        Per-request HTTP timeout in seconds.
    poll_interval:
        Seconds between ``getSignatureStatuses`` polls.
    client:
        Optional pre-built ``httpx.AsyncClient`` (for custom transports). When
        omitted the store creates and owns one.
    """

    def __init__(
        self,
        endpoint: str,
        commitment: str = "confirmed",
        request_timeout: float = 30.0,
        poll_interval: float = 0.5,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if commitment not in COMMITMENT_RANK:
            raise ValueError(f"Unknown commitment {commitment!r}")
        self._endpoint = endpoint
        self._commitment = commitment
        self._poll_interval = poll_interval
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=request_timeout)
        self._request_id = 0

    @classmethod
    def from_config(cls, config: ClientConfig, client: httpx.AsyncClient | None = None) -> "RpcStore":
        return cls(
            config.endpoint,
            commitment=config.commitment,
            poll_interval=config.poll_interval,
            client=client,
        )

    @property
    def endpoint(self) -> str:
        return self._endpoint

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "RpcStore":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # ─── JSON-RPC plumbing ────────────────────────────────────────────────────

    async def _post(self, method: str, params: list[Any]) -> dict[str, Any]:
        """Send one JSON-RPC request and return the decoded response body."""
        self._request_id += 1
        payload = {"jsonrpc": "2.0", "id": self._request_id, "method": method, "params": params}
        logger.debug("rpc request", extra={"method": method, "endpoint": self._endpoint})
        try:
            response = await self._client.post(self._endpoint, json=payload)
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise StoreUnavailable(f"{method} to {self._endpoint} failed: {exc}") from exc
        if not isinstance(body, dict):
            raise StoreUnavailable(f"{method} returned a non-object response")
        return body

    async def _call(self, method: str, params: list[Any]) -> Any:
        body = await self._post(method, params)
        error = body.get("error")
        if error is not None:
            raise StoreUnavailable(f"{method} returned error: {error.get('message', error)}")
        return body.get("result")

    # ─── Reads ────────────────────────────────────────────────────────────────

    async def fetch_account(self, address: StorageAddress | PublicIdentity) -> AccountInfo | None:
        result = await self._call(
            "getAccountInfo",
            [str(address), {"encoding": "base64", "commitment": self._commitment}],
        )
        value = result.get("value") if isinstance(result, dict) else None
        if value is None:
            return None
        try:
            return _account_from_json(value)
        except MALFORMED_RESULT_ERRORS as exc:
            raise StoreUnavailable(f"getAccountInfo returned a malformed account: {exc!r}") from exc

    async def fetch_all_by_type(
        self,
        program_id: PublicIdentity,
        discriminator: bytes,
    ) -> list[tuple[StorageAddress, bytes]]:
        result = await self._call(
            "getProgramAccounts",
            [
                str(program_id),
                {
                    "encoding": "base64",
                    "commitment": self._commitment,
                    "filters": [{"memcmp": {"offset": 0, "bytes": b58encode(discriminator)}}],
                },
            ],
        )
        try:
            return [
                (StorageAddress.from_base58(item["pubkey"]), _account_from_json(item["account"]).data)
                for item in result or []
            ]
        except MALFORMED_RESULT_ERRORS as exc:
            raise StoreUnavailable(f"getProgramAccounts returned a malformed result: {exc!r}") from exc

    async def program_exists(self, program_id: PublicIdentity) -> bool:
        account = await self.fetch_account(program_id)
        return account is not None and account.executable

    async def recent_blockhash(self) -> bytes:
        result = await self._call("getLatestBlockhash", [{"commitment": self._commitment}])
        try:
            return b58decode(result["value"]["blockhash"])
        except MALFORMED_RESULT_ERRORS as exc:
            raise StoreUnavailable(f"getLatestBlockhash returned a malformed result: {exc!r}") from exc

    # ─── Writes ───────────────────────────────────────────────────────────────

    async def submit(self, signed: SignedOperation) -> str:
        encoded = base64.b64encode(signed.wire_bytes()).decode("ascii")
        try:
            body = await self._post(
                "sendTransaction",
                [encoded, {"encoding": "base64", "preflightCommitment": self._commitment}],
            )
        except StoreUnavailable as exc:
            raise SubmissionFailed(str(exc)) from exc

        error = body.get("error")
        if error is not None:
            raise rejection_from_rpc_error(error)

        signature = body.get("result")
        logger.info(
            "operation submitted",
            extra={"operation": signed.operation.kind, "signature": signature},
        )
        return str(signature)

    async def confirm(self, signed: SignedOperation, timeout: float) -> Confirmation:
        signature = signed.signature
        required = COMMITMENT_RANK[self._commitment]
        deadline = time.monotonic() + timeout

        while True:
            try:
                result = await self._call(
                    "getSignatureStatuses",
                    [[signature], {"searchTransactionHistory": False}],
                )
                status = _first_status(result)
            except StoreUnavailable as exc:
                # The operation is already in flight; keep polling until the deadline.
                logger.warning("status poll failed", extra={"signature": signature, "error": str(exc)})
                status = None

            if status is not None:
                if status.get("err") is not None:
                    raise rejection_from_transaction_error(
                        status["err"], f"Operation {signature} failed on-ledger"
                    )
                reached = COMMITMENT_RANK.get(status.get("confirmationStatus") or "processed", 0)
                if reached >= required:
                    return Confirmation(
                        signature=signature,
                        operation=signed.operation.kind,
                        address=signed.operation.address,
                        commitment=self._commitment,
                        slot=status.get("slot"),
                    )

            if time.monotonic() >= deadline:
                raise SubmissionFailed(
                    f"Operation {signature} not confirmed as {self._commitment} within {timeout}s"
                )
            await asyncio.sleep(self._poll_interval)
