"""
Antfarm - the fleet orchestrator.

Owns every ant in the fleet and the fleet sync barrier handed to each of
their job runners. Besides starting and stopping ants it wires their
gateways together and partitions them into consensus groups, which is how
a split network is detected.
"""

from __future__ import annotations

import asyncio
import itertools
import os
import time
from typing import Iterable

import msgspec
import orjson

from antfarm.ant import Ant, AntInfo, NodeConfig
from antfarm.core import FleetSyncBarrier, ThreadGroup
from antfarm.env import Env, load_env
from antfarm.errors import (
    AntNotFoundError,
    AntfarmError,
    ConfigurationError,
    ConsensusQueryError,
    InsufficientPeersError,
    NodeAPIError,
    StoppedError,
    SyncTimeoutError,
)
from antfarm.logging import LogCaller, Logger
from antfarm.logging.config import LoggingConfig
from antfarm.logging.antfarm_logging_models import FarmDebug, FarmError, FarmInfo

from .config import AntfarmConfig, Topology


LOG_FILENAME = "antfarm.json"


async def ant_consensus_groups(*ants: Ant) -> list[list[Ant]]:
    """
    Partition ``ants`` by the (height, block id) each currently reports.

    Every ant lands in exactly one group and groups appear in the order
    their first member was passed in. If any single ant can't be queried
    the whole computation fails with ConsensusQueryError.
    """
    tips = await asyncio.gather(
        *[_chain_tip(ant) for ant in ants],
        return_exceptions=True,
    )

    for tip in tips:
        if isinstance(tip, BaseException):
            raise tip

    groups: dict[object, list[Ant]] = {}
    for ant, tip in zip(ants, tips):
        groups.setdefault(tip, []).append(ant)

    return list(groups.values())


async def _chain_tip(ant: Ant):
    try:
        return await ant.client.chain_tip()

    except (NodeAPIError, StoppedError) as err:
        raise ConsensusQueryError(ant.data_dir, cause=err) from err


class Antfarm:

    def __init__(
        self,
        config: AntfarmConfig,
        logger: Logger,
        env: Env | None = None,
    ) -> None:
        if env is None:
            env = Env()

        self.config = config
        self.logger = logger
        self.env = env
        self.ants: list[Ant] = []
        self.barrier = FleetSyncBarrier()
        self.thread_group = ThreadGroup()
        self._owns_logger = False

    @classmethod
    async def new(
        cls,
        config: AntfarmConfig,
        logger: Logger | None = None,
        env: Env | None = None,
    ) -> Antfarm:
        """
        Start every configured ant, connect them, optionally wait for them
        to agree on one chain, then release the sync barrier.

        Without a logger one is created that also writes to
        ``antfarm.json`` in the farm's data directory and is closed with
        the farm. If any step fails every ant started so far is stopped and
        the error propagates.
        """
        if env is None:
            env = load_env()

        logging_config = LoggingConfig()
        logging_config.update(
            log_directory=env.ANTFARM_LOGS_DIRECTORY,
            log_level=env.ANTFARM_LOG_LEVEL,
        )

        owns_logger = logger is None
        if logger is None:
            logger = Logger()
            logger.configure(
                path=os.path.join(
                    config.data_dir or env.logs_directory(),
                    LOG_FILENAME,
                ),
            )

        farm = cls(config, logger, env=env)
        farm._owns_logger = owns_logger

        try:
            await farm.start_ants(*config.ant_configs)

            if config.auto_connect and len(farm.ants) > 1:
                await farm.connect_ants(topology=config.topology)

            if config.wait_for_sync:
                await farm.wait_for_sync()

        except Exception:
            await farm.close()
            raise

        farm.release_ants_sync()
        farm.start_sync_monitor()

        await logger.log(
            FarmInfo(
                message=f"antfarm started with {len(farm.ants)} ants",
                caller=LogCaller.ANTFARM.value,
            )
        )

        return farm

    async def start_ants(self, *configs: NodeConfig) -> list[Ant]:
        """
        Start ants concurrently. If one fails the others that did start are
        stopped and the first error, in config order, propagates.
        """
        names = [config.name or config.data_dir for config in configs]
        existing = {ant.name for ant in self.ants}
        for name in names:
            if name in existing:
                raise ConfigurationError(f"ant with name {name} already exists", name=name)

            existing.add(name)

        results = await asyncio.gather(
            *[
                Ant.new(config, self.barrier, self.logger, env=self.env)
                for config in configs
            ],
            return_exceptions=True,
        )

        started = [result for result in results if isinstance(result, Ant)]
        errors = [result for result in results if isinstance(result, BaseException)]

        if errors:
            await asyncio.gather(*[ant.stop() for ant in started])
            raise errors[0]

        self.ants.extend(started)

        return started

    async def add_ant(self, config: NodeConfig) -> Ant:
        ants = await self.start_ants(config)
        return ants[0]

    async def remove_ant(self, name: str):
        ant = self.get_ant_by_name(name)
        self.ants.remove(ant)

        await ant.stop()

        await self.logger.log(
            FarmInfo(
                message=f"removed ant {name}",
                caller=LogCaller.ANTFARM.value,
            )
        )

    def get_ant_by_name(self, name: str) -> Ant:
        for ant in self.ants:
            if ant.name == name:
                return ant

        raise AntNotFoundError(name)

    async def connect_ants(
        self,
        *ants: Ant,
        topology: Topology = "hub",
    ) -> list[tuple[str, str]]:
        """
        Connect the gateways of ``ants`` (every ant in the farm when none
        are given).

        ``hub`` connects every ant to the first one, ``mesh`` connects every
        pair. Pairs that are already peers are skipped. A failed connection
        is logged and returned as a ``(name, address)`` pair rather than
        raised.
        """
        if not ants:
            ants = tuple(self.ants)

        if len(ants) < 2:
            raise InsufficientPeersError(len(ants))

        if topology == "hub":
            hub = ants[0]
            pairs = [(ant, hub) for ant in ants[1:]]

        elif topology == "mesh":
            pairs = list(itertools.combinations(ants, 2))

        else:
            raise ConfigurationError(f"unknown topology: {topology}", topology=topology)

        failed: list[tuple[str, str]] = []
        for ant, peer in pairs:
            if not await self._connect(ant, peer.rpc_addr):
                failed.append((ant.name, peer.rpc_addr))

        return failed

    async def connect_external_antfarm(
        self,
        external_ants: Iterable[AntInfo],
    ) -> list[tuple[str, str]]:
        """Connect every local ant to every ant of another farm."""
        failed: list[tuple[str, str]] = []
        for external in external_ants:
            for ant in self.ants:
                if not await self._connect(ant, external.rpc_addr):
                    failed.append((ant.name, external.rpc_addr))

        return failed

    async def _connect(self, ant: Ant, address: str) -> bool:
        try:
            client = ant.client
            gateway = await client.gateway_get()
            if gateway.has_peer(address):
                await self.logger.log(
                    FarmDebug(
                        message=f"{ant.name} is already connected to {address}",
                        caller=LogCaller.ANTFARM.value,
                    )
                )
                return True

            await client.gateway_connect(address)

        except (NodeAPIError, StoppedError) as err:
            await self.logger.log(
                FarmError(
                    message=f"can't connect {ant.name} to {address}: {err}",
                    caller=LogCaller.ANTFARM.value,
                )
            )
            return False

        await self.logger.log(
            FarmDebug(
                message=f"connected {ant.name} to {address}",
                caller=LogCaller.ANTFARM.value,
            )
        )

        return True

    async def consensus_groups(self, *ants: Ant) -> list[list[Ant]]:
        if not ants:
            ants = tuple(self.ants)

        return await ant_consensus_groups(*ants)

    async def wait_for_sync(self, timeout: float | None = None):
        """
        Poll until every ant reports the same chain tip. Raises
        SyncTimeoutError if that doesn't happen within ``timeout``.
        """
        if timeout is None:
            timeout = self.env.seconds("ANTFARM_SYNC_TIMEOUT")

        interval = self.env.seconds("ANTFARM_SYNC_CHECK_INTERVAL")
        deadline = time.monotonic() + timeout

        while True:
            group_count = 0

            try:
                groups = await self.consensus_groups()
                group_count = len(groups)
                if group_count <= 1:
                    break

            except ConsensusQueryError as err:
                await self.logger.log(
                    FarmError(
                        message=f"can't check ant sync: {err}",
                        caller=LogCaller.ANTFARM.value,
                    )
                )

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise SyncTimeoutError(timeout, group_count)

            if not await self.thread_group.sleep(min(interval, remaining)):
                raise StoppedError("antfarm is closing")

        await self.logger.log(
            FarmInfo(
                message="all ants are synced",
                caller=LogCaller.ANTFARM.value,
            )
        )

    def release_ants_sync(self):
        self.barrier.release()

    def start_sync_monitor(self) -> asyncio.Task:
        return self.thread_group.launch(
            self._permanent_sync_monitor(),
            name="antfarm:sync-monitor",
        )

    async def _permanent_sync_monitor(self):
        interval = self.env.seconds("ANTFARM_SYNC_MONITOR_INTERVAL")

        while True:
            if not await self.thread_group.sleep(interval):
                return

            try:
                groups = await self.consensus_groups()

            except ConsensusQueryError as err:
                await self.logger.log(
                    FarmError(
                        message=f"can't get consensus groups: {err}",
                        caller=LogCaller.ANTFARM.value,
                    )
                )
                continue

            if len(groups) > 1:
                sizes = [len(group) for group in groups]
                await self.logger.log(
                    FarmError(
                        message=f"ants split into {len(groups)} consensus groups of sizes {sizes}",
                        caller=LogCaller.ANTFARM.value,
                    )
                )

    def ant_infos(self) -> list[AntInfo]:
        return [ant.info() for ant in self.ants]

    def ants_json(self) -> bytes:
        return orjson.dumps(msgspec.to_builtins(self.ant_infos()))

    async def close(self):
        """Stop the sync monitor, then every ant concurrently."""
        await self.thread_group.stop()

        results = await asyncio.gather(
            *[ant.stop() for ant in self.ants],
            return_exceptions=True,
        )

        unexpected: list[BaseException] = []
        for ant, result in zip(self.ants, results):
            if isinstance(result, AntfarmError):
                await self.logger.log(
                    FarmError(
                        message=f"can't stop ant {ant.name}: {result}",
                        caller=LogCaller.ANTFARM.value,
                    )
                )

            elif isinstance(result, BaseException):
                unexpected.append(result)

        if self._owns_logger:
            await self.logger.close()

        if unexpected:
            raise unexpected[0]
