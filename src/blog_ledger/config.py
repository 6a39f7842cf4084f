# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field

from blog_ledger.errors import ConfigurationError
from blog_ledger.types import PublicIdentity

# Program id of the deployed blog program.
BLOG_PROGRAM_ID: str = "6oppHjv5Nzxg2DrrtHHQZ7qAgMVDszTf9JHBMgYNt5dU"

DEFAULT_NAMESPACE_TAG: str = "blog"

# A single derivation seed may not exceed this many bytes.
MAX_SEED_LENGTH: int = 32

# Field limits declared by the on-ledger account layout.
MAX_TITLE_BYTES: int = 100
MAX_DESCRIPTION_BYTES: int = 500

CLUSTER_ENDPOINTS: dict[str, str] = {
    "localnet": "http://127.0.0.1:8899",
    "devnet": "https://api.devnet.solana.com",
    "testnet": "https://api.testnet.solana.com",
    "mainnet-beta": "https://api.mainnet-beta.solana.com",
}

Commitment = Literal["processed", "confirmed", "finalized"]


class ClientConfig(BaseModel, frozen=True):
    """
    Explicit context for a :class:`~blog_ledger.client.RecordClient`.

    There is no process-wide "current cluster": every client is built from one
    of these, so two clients pointed at different endpoints never share state.

    Attributes:
        endpoint: RPC endpoint URL (or any opaque label for in-process stores).
            Part of every cache key.
        program_id: Namespace-owning program. Differs per deployment target
            and is always supplied here, never derived from the endpoint.
        namespace_tag: First derivation seed.
        commitment: Confirmation level a write must reach before it is
            reported as successful.
        confirm_timeout: Seconds to wait for confirmation before raising
            ``SubmissionFailed``.
        poll_interval: Seconds between confirmation status polls.
        max_title_bytes: Upper bound on UTF-8 title length. Titles are
            derivation seeds, so this can never exceed ``MAX_SEED_LENGTH``.
        max_description_bytes: Upper bound on UTF-8 description length.
    """

    endpoint: str = CLUSTER_ENDPOINTS["localnet"]
    program_id: PublicIdentity = Field(
        default_factory=lambda: PublicIdentity.from_base58(BLOG_PROGRAM_ID)
    )
    namespace_tag: Annotated[str, Field(min_length=1, max_length=MAX_SEED_LENGTH)] = (
        DEFAULT_NAMESPACE_TAG
    )
    commitment: Commitment = "confirmed"
    confirm_timeout: Annotated[float, Field(gt=0)] = 30.0
    poll_interval: Annotated[float, Field(gt=0)] = 0.5
    max_title_bytes: Annotated[int, Field(gt=0, le=MAX_SEED_LENGTH)] = MAX_SEED_LENGTH
    max_description_bytes: Annotated[int, Field(gt=0, le=MAX_DESCRIPTION_BYTES)] = (
        MAX_DESCRIPTION_BYTES
    )

    @classmethod
    def for_cluster(cls, cluster: str, **overrides: Any) -> "ClientConfig":
        """
        Build a config for a named cluster preset.

        Example::

            config = ClientConfig.for_cluster("devnet", program_id="6opp...")
        """
        try:
            endpoint = CLUSTER_ENDPOINTS[cluster]
        except KeyError:
            raise ConfigurationError(
                f"Unknown cluster {cluster!r}. Known clusters: {sorted(CLUSTER_ENDPOINTS)}."
            ) from None
        return cls(endpoint=endpoint, **overrides)
