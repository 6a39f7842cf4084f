# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2026 MuVeraAI Corporation

"""
Deterministic storage addresses for blog entries.

A record's address is a program-derived address: a SHA-256 digest over the
seeds ``[namespace_tag, owner, title]``, a one-byte bump, the program id and a
fixed marker. The first bump (counting down from 255) whose digest is *not* a
point on the ed25519 curve wins. Such an address has no private key, so only
the owning program can sign for it.

Because the address is a pure function of the logical key, "does a record
exist for (owner, title)?" is answered by one direct lookup instead of a scan.
Nothing here does I/O or holds state.
"""

from __future__ import annotations

import hashlib
from typing import Sequence

from blog_ledger.config import MAX_SEED_LENGTH, ClientConfig
from blog_ledger.errors import InvalidKey
from blog_ledger.types import LogicalKey, PublicIdentity, StorageAddress

PDA_MARKER: bytes = b"ProgramDerivedAddress"

MAX_SEEDS: int = 16

# Curve25519 field prime and the twisted Edwards ``d`` constant.
_P: int = 2**255 - 19
_D: int = (-121665 * pow(121666, _P - 2, _P)) % _P


def is_on_curve(candidate: bytes) -> bool:
    """
    Return True if ``candidate`` decompresses to a point on the ed25519 curve.

    The encoding is the y coordinate (little-endian, top bit is the sign of
    x). The point exists iff ``(y^2 - 1) / (d*y^2 + 1)`` is a square mod p.
    """
    y = (int.from_bytes(candidate, "little") & ((1 << 255) - 1)) % _P
    y2 = y * y % _P
    u = (y2 - 1) % _P
    v = (_D * y2 + 1) % _P
    x2 = u * pow(v, _P - 2, _P) % _P
    if x2 == 0:
        return True
    return pow(x2, (_P - 1) // 2, _P) == 1


def _check_seeds(seeds: Sequence[bytes]) -> None:
    if len(seeds) > MAX_SEEDS:
        raise InvalidKey(f"At most {MAX_SEEDS} seeds are allowed, got {len(seeds)}.")
    for index, seed in enumerate(seeds):
        if len(seed) > MAX_SEED_LENGTH:
            raise InvalidKey(
                f"Seed {index} is {len(seed)} bytes; the limit is {MAX_SEED_LENGTH} bytes."
            )


def create_program_address(seeds: Sequence[bytes], program_id: PublicIdentity) -> bytes | None:
    """Hash ``seeds`` (bump included) under ``program_id``; None when on-curve."""
    hasher = hashlib.sha256()
    for seed in seeds:
        hasher.update(seed)
    hasher.update(program_id.raw)
    hasher.update(PDA_MARKER)
    digest = hasher.digest()
    if is_on_curve(digest):
        return None
    return digest


def find_program_address(
    seeds: Sequence[bytes],
    program_id: PublicIdentity,
) -> tuple[StorageAddress, int]:
    """
    Return the canonical ``(address, bump)`` for ``seeds`` under ``program_id``.

    Raises InvalidKey when a seed is too long or no bump yields an off-curve
    digest.
    """
    _check_seeds(seeds)
    for bump in range(255, -1, -1):
        digest = create_program_address([*seeds, bytes([bump])], program_id)
        if digest is not None:
            return StorageAddress(raw=digest), bump
    raise InvalidKey("Unable to find a viable bump seed for the given key.")


def validate_title(title: str, max_bytes: int = MAX_SEED_LENGTH) -> bytes:
    """Return the UTF-8 title bytes or raise InvalidKey."""
    if not isinstance(title, str):
        raise InvalidKey(f"Title must be a string, got {type(title).__name__}.")
    raw = title.encode("utf-8")
    if not raw:
        raise InvalidKey("Title must not be empty.")
    if len(raw) > max_bytes:
        raise InvalidKey(f"Title is {len(raw)} bytes; the limit is {max_bytes} bytes.")
    return raw


def record_seeds(namespace_tag: str, owner: PublicIdentity, title: str) -> list[bytes]:
    if not namespace_tag:
        raise InvalidKey("Namespace tag must not be empty.")
    return [namespace_tag.encode("utf-8"), owner.raw, validate_title(title)]


def resolve(
    namespace_tag: str,
    owner: PublicIdentity,
    title: str,
    program_id: PublicIdentity,
) -> StorageAddress:
    """
    Compute the storage address of the record identified by ``(owner, title)``.

    Pure and deterministic: identical inputs produce byte-identical output
    across calls, processes and clusters. Only ``program_id`` varies between
    deployment targets.
    """
    address, _bump = find_program_address(record_seeds(namespace_tag, owner, title), program_id)
    return address


def address_for(key: LogicalKey, config: ClientConfig) -> StorageAddress:
    """Resolve ``key`` under the namespace and program of ``config``."""
    validate_title(key.title, config.max_title_bytes)
    return resolve(config.namespace_tag, key.owner, key.title, config.program_id)
