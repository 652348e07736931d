"""
Shared pytest configuration for antfarm tests.

Every duration in ``fast_env`` is shrunk so background jobs iterate in
milliseconds instead of seconds.
"""

import pathlib
import stat
import sys

import pytest

from antfarm.ant import NodeConfig
from antfarm.core import FleetSyncBarrier
from antfarm.env import Env
from antfarm.logging.config import LoggingConfig

from tests.unit.mocks import FakeNodeClient, RecordingLogger


@pytest.fixture(autouse=True)
def configure_log_level():
    config = LoggingConfig()
    config.update(log_level="debug")
    yield
    config.update(log_level="info")


@pytest.fixture
def fast_env() -> Env:
    return Env(
        ANTFARM_NODE_START_TIMEOUT="20s",
        ANTFARM_NODE_POLL_INTERVAL="0.05s",
        ANTFARM_NODE_STOP_GRACE_PERIOD="5s",
        ANTFARM_API_REQUEST_TIMEOUT="5s",
        ANTFARM_BALANCE_CHECK_INTERVAL="0.001s",
        ANTFARM_BALANCE_ERROR_BACKOFF="0.001s",
        ANTFARM_GATEWAY_WARMUP="0s",
        ANTFARM_GATEWAY_CHECK_INTERVAL="0.001s",
        ANTFARM_MINER_CHECK_INTERVAL="0.001s",
        ANTFARM_MINER_ERROR_BACKOFF="0.001s",
        ANTFARM_SYNC_CHECK_INTERVAL="0.01s",
        ANTFARM_SYNC_TIMEOUT="1s",
        ANTFARM_SYNC_MONITOR_INTERVAL="0.01s",
    )


@pytest.fixture
def recording_logger() -> RecordingLogger:
    return RecordingLogger()


@pytest.fixture
def released_barrier() -> FleetSyncBarrier:
    return FleetSyncBarrier(released=True)


@pytest.fixture
def fake_client() -> FakeNodeClient:
    return FakeNodeClient()


@pytest.fixture
def node_config(tmp_path) -> NodeConfig:
    return NodeConfig(
        name="ant-0",
        data_dir=str(tmp_path / "ant-0"),
        api_addr="127.0.0.1:9980",
        rpc_addr="127.0.0.1:9981",
        host_addr="127.0.0.1:9982",
        desired_currency=10,
    )


FAKE_NODE = pathlib.Path(__file__).parent / "unit" / "ant" / "fake_node.py"


def write_script(path: pathlib.Path, body: str) -> str:
    path.write_text(f"#!/bin/sh\n{body}\n")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return str(path)


@pytest.fixture
def bin_dir(tmp_path) -> pathlib.Path:
    directory = tmp_path / "bin"
    directory.mkdir()
    return directory


@pytest.fixture
def fake_node_binary(bin_dir) -> str:
    return write_script(
        bin_dir / "siad",
        f'exec "{sys.executable}" "{FAKE_NODE}" "$@"',
    )


@pytest.fixture
def upgraded_node_binary(bin_dir) -> str:
    return write_script(
        bin_dir / "siad-upgraded",
        f'exec "{sys.executable}" "{FAKE_NODE}" "$@"',
    )


@pytest.fixture
def exiting_binary(bin_dir) -> str:
    return write_script(bin_dir / "siad-exits", "exit 3")


@pytest.fixture
def unresponsive_binary(bin_dir) -> str:
    return write_script(bin_dir / "siad-hangs", "exec sleep 60")


@pytest.fixture
def process_env(fast_env):
    return fast_env.model_copy(
        update={
            "ANTFARM_GATEWAY_CHECK_INTERVAL": "0.05s",
            "ANTFARM_BALANCE_CHECK_INTERVAL": "0.05s",
        }
    )


@pytest.fixture
def make_config(tmp_path, fake_node_binary):

    def make(name: str = "ant-0", **kwargs) -> NodeConfig:
        kwargs.setdefault("siad_path", fake_node_binary)
        return NodeConfig(
            name=name,
            data_dir=str(tmp_path / name),
            **kwargs,
        ).with_defaults()

    return make
