from __future__ import annotations

from typing import TYPE_CHECKING

from antfarm.errors import NodeAPIError
from antfarm.logging import LogCaller
from antfarm.logging.antfarm_logging_models import AntDebug, AntError

if TYPE_CHECKING:
    from antfarm.ant.job_runner import JobRunner


class GatewayConnectability:
    """
    Watches an ant's peer count once the fleet is synced.

    After a warm-up the gateway is polled on a fixed interval and an error
    is logged whenever the node has fewer peers than required. The job
    only observes; it never reconnects.
    """

    def __init__(
        self,
        runner: JobRunner,
        min_peers: int | None = None,
    ) -> None:
        env = runner.env
        if min_peers is None:
            min_peers = env.ANTFARM_GATEWAY_MIN_PEERS

        self.runner = runner
        self.min_peers = min_peers
        self._warmup = env.seconds("ANTFARM_GATEWAY_WARMUP")
        self._check_interval = env.seconds("ANTFARM_GATEWAY_CHECK_INTERVAL")

    async def run(self):
        runner = self.runner
        group = runner.thread_group

        if not await runner.wait_for_ants_sync():
            return

        if not await group.sleep(self._warmup):
            return

        while True:
            if not await group.sleep(self._check_interval):
                return

            await self.check()

    async def check(self) -> int | None:
        """Query the gateway once. Returns the peer count, or None on failure."""
        runner = self.runner

        try:
            gateway = await runner.client.gateway_get()

        except NodeAPIError as err:
            await runner.logger.log(
                AntError(
                    message=f"can't get gateway info: {err}",
                    caller=LogCaller.ANT_GATEWAY.value,
                    data_dir=runner.data_dir,
                )
            )
            return None

        peer_count = len(gateway.peers)
        if peer_count < self.min_peers:
            await runner.logger.log(
                AntError(
                    message=f"ant has less than {self.min_peers} peers: {peer_count}",
                    caller=LogCaller.ANT_GATEWAY.value,
                    data_dir=runner.data_dir,
                )
            )

        else:
            await runner.logger.log(
                AntDebug(
                    message=f"ant has {peer_count} peers",
                    caller=LogCaller.ANT_GATEWAY.value,
                    data_dir=runner.data_dir,
                )
            )

        return peer_count
