"""
Ant - the handle for one managed node.

An ant has a stable identity (its name, data directory and addresses)
and a swappable live part: the node process, the API client bound to it
and the job runner. Upgrades replace the live part under a lock while the
identity, the data directory and the wallet seed stay the same.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from antfarm.core import FleetSyncBarrier
from antfarm.env import Env
from antfarm.errors import ConfigurationError, StoppedError
from antfarm.logging import LogCaller, Logger
from antfarm.logging.antfarm_logging_models import AntDebug, AntError, AntInfo

from .client import NodeClient
from .config import NodeConfig
from .job_runner import JobRunner
from .models import AntInfo as AntInfoModel
from .process import NodeProcess


@dataclass
class LiveNode:
    process: NodeProcess
    client: NodeClient
    runner: JobRunner

    async def stop(self):
        # Jobs drain before the process they talk to goes away.
        await self.runner.stop()
        await self.process.stop()
        await self.client.close()


class Ant:

    def __init__(
        self,
        config: NodeConfig,
        live: LiveNode,
        barrier: FleetSyncBarrier,
        logger: Logger,
        env: Env | None = None,
    ) -> None:
        if env is None:
            env = Env()

        self.config = config
        self.barrier = barrier
        self.logger = logger
        self.env = env

        self._live: LiveNode | None = live
        self._wallet_seed = live.runner.wallet_seed
        self._lock = asyncio.Lock()

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def data_dir(self) -> str:
        return self.config.data_dir

    @property
    def api_addr(self) -> str:
        return self.config.api_addr

    @property
    def rpc_addr(self) -> str:
        return self.config.rpc_addr

    @property
    def is_running(self) -> bool:
        return self._live is not None and self._live.process.running

    @property
    def wallet_seed(self) -> str:
        return self._wallet_seed

    @property
    def client(self) -> NodeClient:
        return self._require_live().client

    @property
    def job_runner(self) -> JobRunner:
        return self._require_live().runner

    def _require_live(self) -> LiveNode:
        live = self._live
        if live is None:
            raise StoppedError("ant is stopped", data_dir=self.data_dir)

        return live

    @classmethod
    async def new(
        cls,
        config: NodeConfig,
        barrier: FleetSyncBarrier,
        logger: Logger,
        env: Env | None = None,
    ) -> Ant:
        """
        Start the node, bootstrap its wallet and start its configured jobs.

        On any failure everything started so far is torn down and the error
        propagates, so no partially built ant is ever returned.
        """
        if env is None:
            env = Env()

        JobRunner.check_jobs(config.jobs)

        config = config.with_defaults()
        live = await start_live_node(
            config,
            barrier,
            logger,
            env,
            wallet_seed=config.wallet_seed,
        )

        ant = cls(config, live, barrier, logger, env=env)

        try:
            for job in config.jobs:
                ant.start_job(job)

        except Exception:
            await live.stop()
            raise

        await logger.log(
            AntInfo(
                message=f"ant {config.name} started with jobs {list(config.jobs)}",
                caller=LogCaller.ANT.value,
                data_dir=config.data_dir,
            )
        )

        return ant

    def start_job(self, name: str, *args) -> asyncio.Task:
        return self._require_live().runner.start_job(name, *args)

    async def stop(self):
        """
        Drain every job, stop the node process and remove its lock files.

        Stopping an ant that is already stopped does nothing.
        """
        async with self._lock:
            live = self._live
            self._live = None

            if live is None:
                return

            await live.stop()

        await self.logger.log(
            AntDebug(
                message=f"ant {self.name} stopped",
                caller=LogCaller.ANT.value,
                data_dir=self.data_dir,
            )
        )

    async def close(self):
        await self.stop()

    async def upgrade(self, siad_path: str):
        """
        Replace the node binary while keeping the data directory, addresses
        and wallet seed.

        The running jobs are restarted on the new node. If the new node
        can't be started the ant is left stopped and the error propagates.
        """
        if self.config.attached:
            raise ConfigurationError(
                "can't upgrade an ant attached to an external node",
                data_dir=self.data_dir,
            )

        async with self._lock:
            live = self._live
            self._live = None

            jobs = [(name, ()) for name in self.config.jobs]
            if live is not None:
                jobs = live.runner.started_jobs
                await live.stop()

            config = self.config.model_copy(update={"siad_path": siad_path})

            try:
                live = await start_live_node(
                    config,
                    self.barrier,
                    self.logger,
                    self.env,
                    wallet_seed=self._wallet_seed,
                )

            except Exception as err:
                await self.logger.log(
                    AntError(
                        message=f"can't upgrade ant to {siad_path}, ant is stopped: {err}",
                        caller=LogCaller.ANT.value,
                        data_dir=self.data_dir,
                    )
                )
                raise

            self.config = config
            self._live = live

            for name, args in jobs:
                live.runner.start_job(name, *args)

        await self.logger.log(
            AntInfo(
                message=f"ant {self.name} upgraded to {siad_path}",
                caller=LogCaller.ANT.value,
                data_dir=self.data_dir,
            )
        )

    async def wallet_address(self) -> str:
        """A fresh receive address from the ant's wallet."""
        response = await self.client.wallet_address()
        return response.address

    def info(self) -> AntInfoModel:
        live = self._live
        config = self.config

        return AntInfoModel(
            name=config.name,
            api_addr=config.api_addr,
            rpc_addr=config.rpc_addr,
            host_addr=config.host_addr,
            siamux_addr=config.siamux_addr,
            siamux_ws_addr=config.siamux_ws_addr,
            data_dir=config.data_dir,
            siad_path=config.siad_path,
            jobs=live.runner.jobs if live else list(config.jobs),
            running=self.is_running,
        )


async def start_live_node(
    config: NodeConfig,
    barrier: FleetSyncBarrier,
    logger: Logger,
    env: Env,
    wallet_seed: str | None = None,
) -> LiveNode:
    process = NodeProcess(config, logger, env=env)
    client = NodeClient(
        config.api_addr,
        password=config.api_password,
        timeout=env.seconds("ANTFARM_API_REQUEST_TIMEOUT"),
    )

    try:
        await process.start()
        await process.wait_until_reachable(client)

        if config.renter_disable_ip_violation_check:
            await client.renter_set_ip_violation_check(False)

        runner = await JobRunner.create(
            config,
            client,
            barrier,
            logger,
            env=env,
            existing_wallet_seed=wallet_seed,
        )

    except asyncio.CancelledError:
        await process.stop()
        await client.close()
        raise

    except Exception as err:
        await logger.log(
            AntError(
                message=f"can't start ant: {err}",
                caller=LogCaller.ANT.value,
                data_dir=config.data_dir,
            )
        )

        await process.stop()
        await client.close()
        raise

    return LiveNode(
        process=process,
        client=client,
        runner=runner,
    )
