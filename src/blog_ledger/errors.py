# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2026 MuVeraAI Corporation

"""
Error taxonomy for blog-ledger.

Client-side validation errors (``InvalidKey``, ``KeyMismatch``) are raised
before any network call. Failures reported by the remote store arrive as
``StoreRejection`` carrying the ledger's native error code and are translated
into the taxonomy by :func:`map_store_rejection`; ``StoreRejection`` itself never
escapes :class:`~blog_ledger.client.RecordClient`.
"""

from __future__ import annotations

# Native error codes reported by the ledger for the blog program.
ACCOUNT_ALREADY_IN_USE: int = 0
CONSTRAINT_SEEDS: int = 2006
ACCOUNT_DID_NOT_SERIALIZE: int = 3004
ACCOUNT_NOT_SIGNER: int = 3010
ACCOUNT_NOT_INITIALIZED: int = 3012

# Non-numeric rejections (transaction-level, not program-level).
REASON_SIGNATURE_FAILURE: str = "SignatureFailure"
REASON_MISSING_SIGNATURE: str = "MissingRequiredSignature"
REASON_PROGRAM_NOT_FOUND: str = "ProgramAccountNotFound"
REASON_BLOCKHASH_NOT_FOUND: str = "BlockhashNotFound"


class BlogLedgerError(Exception):
    """Base class for all blog-ledger errors."""

    def __init__(self, message: str, code: str = "BLOG_LEDGER_ERROR") -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class InvalidKey(BlogLedgerError):
    """Raised when a logical key (owner + title) fails client-side validation."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="INVALID_KEY")


class InvalidDescription(InvalidKey):
    """Raised when a description exceeds the on-ledger field limit."""

    def __init__(self, length: int, limit: int) -> None:
        super().__init__(f"Description is {length} bytes; the limit is {limit} bytes.")
        self.code = "INVALID_DESCRIPTION"
        self.length = length
        self.limit = limit


class NotFound(BlogLedgerError):
    """
    No account exists at the address.

    This is an expected, recoverable outcome and is distinct from a
    connectivity failure (:class:`StoreUnavailable`).
    """

    def __init__(self, address: object, message: str | None = None) -> None:
        super().__init__(message or f"No record at address {address}.", code="NOT_FOUND")
        self.address = address


class AlreadyExists(BlogLedgerError):
    """A live record already occupies the address derived for this key."""

    def __init__(self, address: object) -> None:
        super().__init__(f"A record already exists at address {address}.", code="ALREADY_EXISTS")
        self.address = address


class KeyMismatch(BlogLedgerError):
    """
    The supplied address is not the one derived from (owner, title).

    Raised client-side before submission: the store would reject the operation
    anyway.
    """

    def __init__(self, supplied: object, expected: object) -> None:
        super().__init__(
            f"Address {supplied} does not match derived address {expected}.",
            code="KEY_MISMATCH",
        )
        self.supplied = supplied
        self.expected = expected


class Unauthorized(BlogLedgerError):
    """The store refused the acting identity for this record."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="UNAUTHORIZED")


class Rejected(BlogLedgerError):
    """The signer declined to sign the operation."""

    def __init__(self, message: str = "Signer declined the operation.") -> None:
        super().__init__(message, code="REJECTED")


class SubmissionFailed(BlogLedgerError):
    """
    The operation could not be submitted or was not confirmed.

    Potentially transient. Never retried automatically: a retry is a new,
    explicit call by the caller.
    """

    def __init__(self, message: str, native_code: int | None = None) -> None:
        super().__init__(message, code="SUBMISSION_FAILED")
        self.native_code = native_code


class StoreUnavailable(BlogLedgerError):
    """A read could not reach the remote store."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="STORE_UNAVAILABLE")


class ConfigurationError(BlogLedgerError):
    """Raised when the client is misconfigured."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="CONFIGURATION_ERROR")


class StoreRejection(Exception):
    """
    Store-native failure raised by RemoteStore implementations.

    ``code`` is the program or system error number when the failure came from
    instruction execution; ``reason`` names transaction-level failures that
    carry no number (for example ``"SignatureFailure"``).
    """

    def __init__(
        self,
        message: str,
        code: int | None = None,
        reason: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.reason = reason

    def __repr__(self) -> str:
        return f"StoreRejection(code={self.code!r}, reason={self.reason!r}, message={self.message!r})"


_UNAUTHORIZED_CODES = frozenset({CONSTRAINT_SEEDS, ACCOUNT_NOT_SIGNER})
_UNAUTHORIZED_REASONS = frozenset({REASON_SIGNATURE_FAILURE, REASON_MISSING_SIGNATURE})


def map_store_rejection(
    rejection: StoreRejection,
    operation: str,
    address: object,
) -> BlogLedgerError:
    """
    Translate a store-native rejection into the client error taxonomy.

    ``ACCOUNT_ALREADY_IN_USE`` only means "occupied" for a create; on any other
    operation the same number is an unrelated failure.
    """
    code = rejection.code
    if operation == "create" and code == ACCOUNT_ALREADY_IN_USE:
        return AlreadyExists(address)
    if code == ACCOUNT_NOT_INITIALIZED:
        return NotFound(address)
    if code in _UNAUTHORIZED_CODES or rejection.reason in _UNAUTHORIZED_REASONS:
        return Unauthorized(f"Store refused {operation} at {address}: {rejection.message}")
    return SubmissionFailed(
        f"Store rejected {operation} at {address}: {rejection.message}",
        native_code=code,
    )
