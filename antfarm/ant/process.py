"""
Node Process - owns one external node process.

Launches the node binary against a data directory, waits for its API to
answer, and stops it with SIGTERM escalating to SIGKILL. After a stop the
lock files the node leaves behind are removed so the same data directory
can be reused by a restart or an upgrade.

An attached node (``siad_path`` of None) is one this farm did not start:
reachability is still verified but the process is never signalled.
"""

import asyncio
import io
import os
import pathlib
import shutil
import signal
import time

import psutil

from antfarm.env import Env
from antfarm.errors import ProcessError, ProcessExitedError, StartTimeoutError
from antfarm.logging import LogCaller, Logger
from antfarm.logging.antfarm_logging_models import AntDebug, AntError, AntInfo

from .client import NodeClient
from .config import NodeConfig


NODE_OUTPUT_FILENAME = "siad-output.log"


def resolve_binary(siad_path: str) -> str:
    """
    Resolve a node binary given either as a name on PATH or as a relative
    or absolute path.
    """
    if os.sep in siad_path or (os.altsep and os.altsep in siad_path):
        return str(pathlib.Path(siad_path).expanduser().absolute())

    if resolved := shutil.which(siad_path):
        return resolved

    return siad_path


class NodeProcess:

    def __init__(
        self,
        config: NodeConfig,
        logger: Logger,
        env: Env | None = None,
    ) -> None:
        if env is None:
            env = Env()

        self.config = config
        self._env = env
        self._logger = logger
        self._process: asyncio.subprocess.Process | None = None
        self._exit_waiter: asyncio.Task | None = None
        self._output: io.BufferedWriter | None = None

    @property
    def pid(self) -> int | None:
        if self._process:
            return self._process.pid

    @property
    def return_code(self) -> int | None:
        if self._process:
            return self._process.returncode

    @property
    def running(self) -> bool:
        if self.config.attached:
            return True

        return self._process is not None and self._process.returncode is None

    def _args(self) -> list[str]:
        config = self.config
        args = [
            "--no-bootstrap",
            f"--sia-directory={config.data_dir}",
            f"--api-addr={config.api_addr}",
            f"--rpc-addr={config.rpc_addr}",
            f"--host-addr={config.host_addr}",
        ]

        if config.siamux_addr:
            args.append(f"--siamux-addr={config.siamux_addr}")

        if config.siamux_ws_addr:
            args.append(f"--siamux-addr-ws={config.siamux_ws_addr}")

        return args

    def _process_env(self) -> dict[str, str]:
        process_env = dict(os.environ)

        if self.config.api_password:
            process_env["SIA_API_PASSWORD"] = self.config.api_password

        if self.config.allow_host_local_net_address:
            process_env["SIA_ALLOW_HOST_LOCAL_NET_ADDRESS"] = "true"

        return process_env

    async def start(self):
        if self.config.attached:
            await self._logger.log(
                AntDebug(
                    message=f"attaching to running node at {self.config.api_addr}",
                    caller=LogCaller.ANT.value,
                    data_dir=self.config.data_dir,
                )
            )
            return

        if self.running:
            return

        loop = asyncio.get_running_loop()
        data_dir = pathlib.Path(self.config.data_dir)
        await loop.run_in_executor(
            None,
            lambda: data_dir.mkdir(parents=True, exist_ok=True),
        )

        self._output = await loop.run_in_executor(
            None,
            open,
            str(data_dir / NODE_OUTPUT_FILENAME),
            "ab",
        )

        binary = resolve_binary(self.config.siad_path)

        try:
            self._process = await asyncio.create_subprocess_exec(
                binary,
                *self._args(),
                stdout=self._output,
                stderr=asyncio.subprocess.STDOUT,
                env=self._process_env(),
                start_new_session=True,
            )

        except OSError as err:
            self._close_output()
            await self._logger.log(
                AntError(
                    message=f"can't start node process {binary}: {err}",
                    caller=LogCaller.ANT.value,
                    data_dir=self.config.data_dir,
                )
            )

            raise ProcessError(
                f"can't start node process {binary}",
                cause=err,
                data_dir=self.config.data_dir,
            ) from err

        self._exit_waiter = asyncio.create_task(self._process.wait())

        await self._logger.log(
            AntInfo(
                message=f"started node process {binary} with pid {self._process.pid}",
                caller=LogCaller.ANT.value,
                data_dir=self.config.data_dir,
            )
        )

    async def wait_until_reachable(
        self,
        client: NodeClient,
        timeout: float | None = None,
        poll_interval: float | None = None,
    ):
        if timeout is None:
            timeout = self._env.seconds("ANTFARM_NODE_START_TIMEOUT")

        if poll_interval is None:
            poll_interval = self._env.seconds("ANTFARM_NODE_POLL_INTERVAL")

        deadline = time.monotonic() + timeout

        while True:
            if self._process and self._process.returncode is not None:
                raise ProcessExitedError(
                    self.config.data_dir,
                    self._process.returncode,
                )

            if await client.daemon_ready():
                return

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise StartTimeoutError(
                    self.config.data_dir,
                    self.config.api_addr,
                    timeout,
                )

            await self._wait_for_exit(min(poll_interval, remaining))

    async def _wait_for_exit(self, seconds: float) -> bool:
        if self._exit_waiter is None:
            await asyncio.sleep(seconds)
            return False

        done, _ = await asyncio.wait({self._exit_waiter}, timeout=seconds)
        return self._exit_waiter in done

    async def stop(self, grace_period: float | None = None):
        if grace_period is None:
            grace_period = self._env.seconds("ANTFARM_NODE_STOP_GRACE_PERIOD")

        if self.config.attached or self._process is None:
            return

        if self._process.returncode is None:
            children = self._children()

            try:
                self._process.send_signal(signal.SIGTERM)

            except ProcessLookupError:
                pass

            if not await self._wait_for_exit(grace_period):
                await self._logger.log(
                    AntError(
                        message=f"node didn't stop within {grace_period:.1f}s, killing it",
                        caller=LogCaller.ANT.value,
                        data_dir=self.config.data_dir,
                    )
                )

                try:
                    self._process.kill()

                except ProcessLookupError:
                    pass

                await self._process.wait()

            await self._kill_children(children)

        await self._logger.log(
            AntInfo(
                message=f"node process {self._process.pid} stopped with code {self._process.returncode}",
                caller=LogCaller.ANT.value,
                data_dir=self.config.data_dir,
            )
        )

        self._close_output()
        await self.remove_lock_files()

    def _children(self) -> list[psutil.Process]:
        try:
            return psutil.Process(self._process.pid).children(recursive=True)

        except psutil.Error:
            return []

    async def _kill_children(self, children: list[psutil.Process]):
        if not children:
            return

        loop = asyncio.get_running_loop()
        _, alive = await loop.run_in_executor(
            None,
            lambda: psutil.wait_procs(children, timeout=1),
        )

        for child in alive:
            try:
                child.kill()

            except psutil.NoSuchProcess:
                pass

    def _close_output(self):
        if self._output and not self._output.closed:
            self._output.close()

        self._output = None

    async def remove_lock_files(self) -> list[pathlib.Path]:
        """Remove lock files left in the data directory by a stopped node."""
        loop = asyncio.get_running_loop()
        removed = await loop.run_in_executor(None, self._remove_lock_files)

        for path in removed:
            await self._logger.log(
                AntDebug(
                    message=f"removed lock file {path}",
                    caller=LogCaller.ANT.value,
                    data_dir=self.config.data_dir,
                )
            )

        return removed

    def _remove_lock_files(self) -> list[pathlib.Path]:
        data_dir = pathlib.Path(self.config.data_dir)
        if not data_dir.exists():
            return []

        removed: list[pathlib.Path] = []
        for pattern in self._env.lock_file_patterns():
            for path in data_dir.rglob(pattern):
                if path.is_file():
                    path.unlink(missing_ok=True)
                    removed.append(path)

        return removed
