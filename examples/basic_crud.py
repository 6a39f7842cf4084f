# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2026 MuVeraAI Corporation
"""
Basic create / read / update / delete example.

Runs against an in-process MemoryLedger, so no cluster is required. Swap the
store for ``RpcStore.from_config(ClientConfig.for_cluster("devnet"))`` to talk
to a real endpoint.

Run with:
    python examples/basic_crud.py
"""
from __future__ import annotations

import asyncio
import logging

from blog_ledger import (
    AlreadyExists,
    ClientConfig,
    Keypair,
    KeypairSigner,
    MemoryLedger,
    NotFound,
    RecordClient,
)


async def main() -> None:
    logging.basicConfig(level=logging.INFO)

    # ------------------------------------------------------------------ #
    # 1. Build a client for one owner
    # ------------------------------------------------------------------ #
    alice = Keypair.generate()
    client = RecordClient(
        config=ClientConfig(endpoint="memory://ledger"),
        store=MemoryLedger(),
        signer=KeypairSigner(alice),
    )
    print(f"Program present: {(await client.get_program_presence()).value}")

    # ------------------------------------------------------------------ #
    # 2. Create and list
    # ------------------------------------------------------------------ #
    confirmation = await client.create("Hello", "First post", alice.identity)
    print(f"Created at {confirmation.address} (signature {confirmation.signature[:16]}...)")

    for address, state in await client.list_all():
        print(f"  {address}  {state.title!r}: {state.description!r}")

    try:
        await client.create("Hello", "Second attempt", alice.identity)
    except AlreadyExists as exc:
        print(f"Duplicate create refused: {exc}")

    # ------------------------------------------------------------------ #
    # 3. Update through the derived address
    # ------------------------------------------------------------------ #
    address = client.resolve(alice.identity, "Hello")
    await client.update(address, "Hello", "Edited", alice.identity)
    print(f"After update: {(await client.get_one(address)).description!r}")

    # ------------------------------------------------------------------ #
    # 4. Delete
    # ------------------------------------------------------------------ #
    await client.delete("Hello", alice.identity)
    print(f"Entries after delete: {len(await client.list_all())}")
    try:
        await client.get_one(address)
    except NotFound as exc:
        print(f"Lookup after delete: {exc}")


if __name__ == "__main__":
    asyncio.run(main())
