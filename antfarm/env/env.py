from __future__ import annotations

import os
from typing import Callable, Dict, Union

from pydantic import BaseModel, StrictInt, StrictStr

from .time_parser import TimeParser

PrimaryType = Union[str, int, float, bytes, bool]


class Env(BaseModel):
    ANTFARM_LOG_LEVEL: StrictStr = "info"
    ANTFARM_LOGS_DIRECTORY: StrictStr | None = None

    # Node process lifecycle
    ANTFARM_NODE_START_TIMEOUT: StrictStr = "3m"
    ANTFARM_NODE_POLL_INTERVAL: StrictStr = "0.5s"
    ANTFARM_NODE_STOP_GRACE_PERIOD: StrictStr = "30s"
    ANTFARM_API_REQUEST_TIMEOUT: StrictStr = "30s"
    ANTFARM_LOCK_FILE_PATTERNS: StrictStr = "*.lock"

    # Balance maintainer
    ANTFARM_BALANCE_CHECK_INTERVAL: StrictStr = "20s"
    ANTFARM_BALANCE_ERROR_BACKOFF: StrictStr = "5s"

    # Gateway connectability
    ANTFARM_GATEWAY_WARMUP: StrictStr = "1m"
    ANTFARM_GATEWAY_CHECK_INTERVAL: StrictStr = "30s"
    ANTFARM_GATEWAY_MIN_PEERS: StrictInt = 2

    # Miner
    ANTFARM_MINER_CHECK_INTERVAL: StrictStr = "1m"
    ANTFARM_MINER_ERROR_BACKOFF: StrictStr = "5s"

    # Fleet sync
    ANTFARM_SYNC_CHECK_INTERVAL: StrictStr = "5s"
    ANTFARM_SYNC_TIMEOUT: StrictStr = "5m"
    ANTFARM_SYNC_MONITOR_INTERVAL: StrictStr = "1m"

    @classmethod
    def types_map(cls) -> Dict[str, Callable[[str], PrimaryType]]:
        return {
            "ANTFARM_LOG_LEVEL": str,
            "ANTFARM_LOGS_DIRECTORY": str,
            "ANTFARM_NODE_START_TIMEOUT": str,
            "ANTFARM_NODE_POLL_INTERVAL": str,
            "ANTFARM_NODE_STOP_GRACE_PERIOD": str,
            "ANTFARM_API_REQUEST_TIMEOUT": str,
            "ANTFARM_LOCK_FILE_PATTERNS": str,
            "ANTFARM_BALANCE_CHECK_INTERVAL": str,
            "ANTFARM_BALANCE_ERROR_BACKOFF": str,
            "ANTFARM_GATEWAY_WARMUP": str,
            "ANTFARM_GATEWAY_CHECK_INTERVAL": str,
            "ANTFARM_GATEWAY_MIN_PEERS": int,
            "ANTFARM_MINER_CHECK_INTERVAL": str,
            "ANTFARM_MINER_ERROR_BACKOFF": str,
            "ANTFARM_SYNC_CHECK_INTERVAL": str,
            "ANTFARM_SYNC_TIMEOUT": str,
            "ANTFARM_SYNC_MONITOR_INTERVAL": str,
        }

    def seconds(self, name: str) -> float:
        """Parse a duration setting such as ``"20s"`` or ``"1m"`` into seconds."""
        return TimeParser(getattr(self, name)).time

    def lock_file_patterns(self) -> list[str]:
        return [
            pattern.strip()
            for pattern in self.ANTFARM_LOCK_FILE_PATTERNS.split(",")
            if pattern.strip()
        ]

    def logs_directory(self) -> str:
        return self.ANTFARM_LOGS_DIRECTORY or os.getcwd()
