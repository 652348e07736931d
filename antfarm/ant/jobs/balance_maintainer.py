"""
Balance Maintainer - keeps an ant's confirmed balance near a target.

The job drives the node's miner through two states. While the balance is
at or below the target the miner runs; once the balance is above it the
miner is stopped. The starting state is read from the node rather than
assumed, and a failed query or miner command never changes state.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from antfarm.errors import NodeAPIError
from antfarm.logging import LogCaller
from antfarm.logging.antfarm_logging_models import AntDebug, AntError, AntInfo

if TYPE_CHECKING:
    from antfarm.ant.job_runner import JobRunner


class MinerState(Enum):
    MINER_OFF = "miner_off"
    MINER_ON = "miner_on"


class MinerAction(Enum):
    NONE = "none"
    START_MINER = "start_miner"
    STOP_MINER = "stop_miner"


VALID_TRANSITIONS: dict[tuple[MinerState, MinerAction], MinerState] = {
    (MinerState.MINER_OFF, MinerAction.START_MINER): MinerState.MINER_ON,
    (MinerState.MINER_ON, MinerAction.STOP_MINER): MinerState.MINER_OFF,
}


class BalanceMaintainerStateMachine:
    """
    Pure decision logic for the balance maintainer.

    ``decide`` maps the current state and an observed balance to the miner
    command to issue. ``apply`` gives the state after that command
    succeeded.
    """

    @classmethod
    def decide(
        cls,
        state: MinerState,
        balance: int,
        target: int,
    ) -> MinerAction:
        if balance <= target and state == MinerState.MINER_OFF:
            return MinerAction.START_MINER

        if balance > target and state == MinerState.MINER_ON:
            return MinerAction.STOP_MINER

        return MinerAction.NONE

    @classmethod
    def apply(
        cls,
        state: MinerState,
        action: MinerAction,
    ) -> MinerState:
        if action == MinerAction.NONE:
            return state

        next_state = VALID_TRANSITIONS.get((state, action))
        if next_state is None:
            raise ValueError(f"{action.value} is not valid from {state.value}")

        return next_state


class BalanceMaintainer:

    def __init__(
        self,
        runner: JobRunner,
        desired_balance: int | None = None,
    ) -> None:
        if desired_balance is None:
            desired_balance = runner.config.desired_currency

        self.runner = runner
        self.desired_balance = desired_balance
        self.state: MinerState | None = None
        self.transitions: list[tuple[MinerState, MinerState]] = []

        env = runner.env
        self._check_interval = env.seconds("ANTFARM_BALANCE_CHECK_INTERVAL")
        self._error_backoff = env.seconds("ANTFARM_BALANCE_ERROR_BACKOFF")

    async def _log(self, entry_type, message: str):
        await self.runner.logger.log(
            entry_type(
                message=message,
                caller=LogCaller.ANT_BALANCE_MAINTAINER.value,
                data_dir=self.runner.data_dir,
            )
        )

    async def run(self):
        runner = self.runner
        group = runner.thread_group

        if not await runner.wait_for_ants_sync():
            return

        while self.state is None:
            try:
                miner = await runner.client.miner_get()
                self.state = MinerState.MINER_ON if miner.cpumining else MinerState.MINER_OFF

            except NodeAPIError as err:
                await self._log(AntError, f"can't get miner status: {err}")
                if not await group.sleep(self._error_backoff):
                    return

        await self._log(
            AntDebug,
            f"starting in {self.state.value} with target balance {self.desired_balance}",
        )

        while True:
            if await self._poll():
                wait = self._check_interval

            else:
                wait = self._error_backoff

            if not await group.sleep(wait):
                return

    async def _poll(self) -> bool:
        client = self.runner.client

        try:
            wallet = await client.wallet_get()

        except NodeAPIError as err:
            await self._log(AntError, f"can't get wallet info: {err}")
            return False

        balance = wallet.confirmed_balance
        action = BalanceMaintainerStateMachine.decide(
            self.state,
            balance,
            self.desired_balance,
        )

        if action == MinerAction.NONE:
            return True

        try:
            if action == MinerAction.START_MINER:
                await client.miner_start()

            else:
                await client.miner_stop()

        except NodeAPIError as err:
            await self._log(AntError, f"can't {action.value.replace('_', ' ')}: {err}")
            return False

        previous = self.state
        self.state = BalanceMaintainerStateMachine.apply(previous, action)
        self.transitions.append((previous, self.state))

        await self._log(
            AntInfo,
            f"balance {balance} vs target {self.desired_balance}, {previous.value} -> {self.state.value}",
        )

        return True
