from __future__ import annotations

from typing import TYPE_CHECKING

from antfarm.errors import NodeAPIError
from antfarm.logging import LogCaller
from antfarm.logging.antfarm_logging_models import AntError, AntInfo

if TYPE_CHECKING:
    from antfarm.ant.job_runner import JobRunner


class Miner:
    """
    Mines blocks continuously once the fleet is synced.

    The miner is started, then on every check interval the confirmed
    balance must have grown since the last check; if it hasn't an error is
    logged and mining continues.
    """

    def __init__(self, runner: JobRunner) -> None:
        env = runner.env

        self.runner = runner
        self.last_balance: int | None = None
        self._check_interval = env.seconds("ANTFARM_MINER_CHECK_INTERVAL")
        self._error_backoff = env.seconds("ANTFARM_MINER_ERROR_BACKOFF")

    async def _log(self, entry_type, message: str):
        await self.runner.logger.log(
            entry_type(
                message=message,
                caller=LogCaller.ANT_MINER.value,
                data_dir=self.runner.data_dir,
            )
        )

    async def run(self):
        runner = self.runner
        group = runner.thread_group

        if not await runner.wait_for_ants_sync():
            return

        while True:
            try:
                await runner.client.miner_start()
                break

            except NodeAPIError as err:
                await self._log(AntError, f"can't start miner: {err}")
                if not await group.sleep(self._error_backoff):
                    return

        await self._log(AntInfo, "miner started")

        while True:
            if not await group.sleep(self._check_interval):
                return

            await self.check()

    async def check(self) -> bool:
        try:
            wallet = await self.runner.client.wallet_get()

        except NodeAPIError as err:
            await self._log(AntError, f"can't get wallet info: {err}")
            return False

        balance = wallet.confirmed_balance
        if self.last_balance is not None and balance <= self.last_balance:
            await self._log(
                AntError,
                f"it took too long to receive new funds in miner job, balance is still {balance}",
            )
            return False

        self.last_balance = balance
        await self._log(AntInfo, f"mining succeeded, balance is {balance}")

        return True
