from __future__ import annotations

import asyncio
from typing import Any, Iterable

from antfarm.core import FleetSyncBarrier, ThreadGroup
from antfarm.env import Env
from antfarm.errors import NodeAPIError, UnknownJobError, WalletBootstrapError
from antfarm.logging import LogCaller, Logger
from antfarm.logging.antfarm_logging_models import AntDebug, AntError

from .client import NodeClient
from .config import NodeConfig
from .jobs import JOB_REGISTRY


class JobRunner:
    """
    Runs named background jobs against one ant's node.

    A job runner owns the ThreadGroup every job is launched under, the
    node's API client and the wallet seed. ``stop()`` drains every job; a
    job launched after stopping has begun fails with StoppedError and never
    runs.

    Use ``JobRunner.create()`` to build one: the wallet is bootstrapped and
    unlocked before any job can be started.
    """

    def __init__(
        self,
        config: NodeConfig,
        client: NodeClient,
        barrier: FleetSyncBarrier,
        logger: Logger,
        wallet_seed: str,
        env: Env | None = None,
    ) -> None:
        if env is None:
            env = Env()

        self.config = config
        self.client = client
        self.logger = logger
        self.env = env
        self.wallet_seed = wallet_seed
        self.thread_group = ThreadGroup()
        self._barrier = barrier
        self._jobs: list[tuple[str, tuple[Any, ...], asyncio.Task]] = []

    @property
    def data_dir(self) -> str:
        return self.config.data_dir

    @property
    def barrier(self) -> FleetSyncBarrier:
        return self._barrier

    @property
    def jobs(self) -> list[str]:
        return [name for name, _, _ in self._jobs]

    @property
    def started_jobs(self) -> list[tuple[str, tuple[Any, ...]]]:
        """Every job started so far with the arguments it was started with."""
        return [(name, args) for name, args, _ in self._jobs]

    @classmethod
    async def create(
        cls,
        config: NodeConfig,
        client: NodeClient,
        barrier: FleetSyncBarrier,
        logger: Logger,
        env: Env | None = None,
        existing_wallet_seed: str | None = None,
    ) -> JobRunner:
        """
        Bootstrap the node's wallet and return a runner bound to it.

        - No seed given: initialize a new wallet and keep its seed.
        - Seed given, wallet not encrypted: initialize from that seed.
        - Seed given, wallet encrypted: reuse the seed as is.

        In every case the wallet is unlocked with the resolved seed. Any
        failure raises WalletBootstrapError.
        """
        data_dir = config.data_dir

        try:
            wallet = await client.wallet_get()

        except NodeAPIError as err:
            await cls._log_bootstrap_error(logger, data_dir, "can't get wallet info", err)
            raise WalletBootstrapError("can't get wallet info", data_dir, cause=err) from err

        if not existing_wallet_seed:
            try:
                response = await client.wallet_init()

            except NodeAPIError as err:
                await cls._log_bootstrap_error(logger, data_dir, "can't init wallet", err)
                raise WalletBootstrapError("can't init wallet", data_dir, cause=err) from err

            wallet_seed = response.primaryseed
            message = "init wallet"

        elif not wallet.encrypted:
            try:
                await client.wallet_init_seed(existing_wallet_seed)

            except NodeAPIError as err:
                await cls._log_bootstrap_error(logger, data_dir, "can't init wallet using existing seed", err)
                raise WalletBootstrapError("can't init wallet using existing seed", data_dir, cause=err) from err

            wallet_seed = existing_wallet_seed
            message = "init wallet using existing seed"

        else:
            # Runner re-creation after an upgrade lands here.
            wallet_seed = existing_wallet_seed
            message = "use existing initialized wallet"

        await logger.log(
            AntDebug(
                message=message,
                caller=LogCaller.ANT_JOB_RUNNER.value,
                data_dir=data_dir,
            )
        )

        try:
            await client.wallet_unlock(wallet_seed)

        except NodeAPIError as err:
            await cls._log_bootstrap_error(logger, data_dir, "can't unlock wallet", err)
            raise WalletBootstrapError("can't unlock wallet", data_dir, cause=err) from err

        return cls(
            config,
            client,
            barrier,
            logger,
            wallet_seed,
            env=env,
        )

    @staticmethod
    async def _log_bootstrap_error(
        logger: Logger,
        data_dir: str,
        message: str,
        err: Exception,
    ):
        await logger.log(
            AntError(
                message=f"{message}: {err}",
                caller=LogCaller.ANT_JOB_RUNNER.value,
                data_dir=data_dir,
            )
        )

    async def recreate(
        self,
        config: NodeConfig | None = None,
        client: NodeClient | None = None,
    ) -> JobRunner:
        """Create a fresh runner for the same wallet, e.g. after an upgrade."""
        return await JobRunner.create(
            config or self.config,
            client or self.client,
            self._barrier,
            self.logger,
            env=self.env,
            existing_wallet_seed=self.wallet_seed,
        )

    @staticmethod
    def check_jobs(names: Iterable[str]):
        for name in names:
            if name not in JOB_REGISTRY:
                raise UnknownJobError(name, sorted(JOB_REGISTRY))

    def start_job(self, name: str, *args: Any) -> asyncio.Task:
        self.check_jobs([name])

        job = JOB_REGISTRY[name](self, *args)
        task = self.thread_group.launch(
            job.run(),
            name=f"{self.data_dir}:{name}",
        )

        self._jobs.append((name, args, task))

        return task

    async def wait_for_ants_sync(self) -> bool:
        """
        Wait for the fleet sync barrier. Returns False if the runner was
        stopped first.
        """
        return await self.thread_group.wait_or_stop(self._barrier.wait())

    async def stop(self):
        await self.thread_group.stop()
