"""
Mock implementations for ant and farm tests.

FakeNodeClient stands in for NodeClient with programmable wallet, miner,
gateway and consensus state. RecordingLogger stands in for Logger and
keeps every entry it was given.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any

from antfarm.ant.client import (
    ChainTip,
    ConsensusInfo,
    GatewayInfo,
    MinerInfo,
    Peer,
    WalletInfo,
    WalletInitResponse,
)
from antfarm.errors import NodeAPIError
from antfarm.logging import LogLevel


@dataclass
class FakeNodeClient:
    """Programmable stand-in for a node's API client."""

    address: str = "127.0.0.1:9980"
    netaddress: str = "127.0.0.1:9981"
    encrypted: bool = False
    generated_seed: str = "generated seed"
    balances: list[int] = field(default_factory=lambda: [0])
    cpumining: bool = False
    peers: list[str] = field(default_factory=list)
    height: int = 1
    block_id: str = "block-1"
    failures: dict[str, int] = field(default_factory=dict)
    calls: list[tuple[str, tuple[Any, ...]]] = field(default_factory=list)
    closed: bool = False

    def _record(self, method: str, *args: Any):
        self.calls.append((method, args))

        remaining = self.failures.get(method, 0)
        if remaining:
            self.failures[method] = remaining - 1
            raise NodeAPIError("GET", f"/{method}", status=500, body="simulated failure")

    def count(self, method: str) -> int:
        return len([name for name, _ in self.calls if name == method])

    def args(self, method: str) -> list[tuple[Any, ...]]:
        return [args for name, args in self.calls if name == method]

    async def close(self):
        self.closed = True

    async def daemon_ready(self) -> bool:
        return True

    async def wallet_get(self) -> WalletInfo:
        self._record("wallet_get")

        balance = self.balances[0]
        if len(self.balances) > 1:
            self.balances.pop(0)

        return WalletInfo(
            encrypted=self.encrypted,
            unlocked=self.encrypted,
            confirmedsiacoinbalance=str(balance),
        )

    async def wallet_init(self, encryption_password: str = "", force: bool = False) -> WalletInitResponse:
        self._record("wallet_init")
        self.encrypted = True
        return WalletInitResponse(primaryseed=self.generated_seed)

    async def wallet_init_seed(self, seed: str, encryption_password: str = "", force: bool = False):
        self._record("wallet_init_seed", seed)
        self.encrypted = True

    async def wallet_unlock(self, encryption_password: str):
        self._record("wallet_unlock", encryption_password)

    async def miner_get(self) -> MinerInfo:
        self._record("miner_get")
        return MinerInfo(cpumining=self.cpumining)

    async def miner_start(self):
        self._record("miner_start")
        self.cpumining = True

    async def miner_stop(self):
        self._record("miner_stop")
        self.cpumining = False

    async def gateway_get(self) -> GatewayInfo:
        self._record("gateway_get")
        return GatewayInfo(
            netaddress=self.netaddress,
            peers=[Peer(netaddress=peer) for peer in self.peers],
        )

    async def gateway_connect(self, netaddress: str):
        self._record("gateway_connect", netaddress)
        if netaddress not in self.peers:
            self.peers.append(netaddress)

    async def consensus_get(self) -> ConsensusInfo:
        self._record("consensus_get")
        return ConsensusInfo(
            synced=True,
            height=self.height,
            currentblock=self.block_id,
        )

    async def chain_tip(self) -> ChainTip:
        consensus = await self.consensus_get()
        return ChainTip(consensus.height, consensus.currentblock)

    async def renter_set_ip_violation_check(self, enabled: bool):
        self._record("renter_set_ip_violation_check", enabled)


@dataclass
class FakeAnt:
    """The parts of an Ant the farm's peer and consensus logic touches."""

    name: str
    client: FakeNodeClient

    @property
    def data_dir(self) -> str:
        return f"/tmp/{self.name}"

    @property
    def rpc_addr(self) -> str:
        return self.client.netaddress


class RecordingLogger:
    """Logger stand-in that keeps every entry instead of writing it."""

    def __init__(self) -> None:
        self.entries: list[Any] = []

    async def log(
        self,
        entry: Any,
        name: str | None = None,
        template: str | None = None,
        filter: Any = None,
    ):
        self.entries.append(entry)

    async def close(self):
        pass

    def at_level(self, level: LogLevel, caller: str | None = None) -> list[Any]:
        return [
            entry
            for entry in self.entries
            if entry.level == level and (caller is None or entry.caller == caller)
        ]

    def errors(self, caller: str | None = None) -> list[Any]:
        return self.at_level(LogLevel.ERROR, caller=caller)


async def wait_until(condition, timeout: float = 5.0, interval: float = 0.001):
    """Poll ``condition`` until it is true or fail after ``timeout``."""

    async def poll():
        while not condition():
            await asyncio.sleep(interval)

    await asyncio.wait_for(poll(), timeout=timeout)
