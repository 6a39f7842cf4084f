# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2026 MuVeraAI Corporation

from .interface import RemoteStore
from .memory import MemoryLedger
from .rpc import RpcStore

__all__ = ["RemoteStore", "MemoryLedger", "RpcStore"]
