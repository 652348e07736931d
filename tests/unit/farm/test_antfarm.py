"""
Tests for Antfarm running fake node processes.

Covers:
1. Starting a farm: ants started, connected, synced, barrier released
2. Failed construction stopping every started ant
3. Adding, removing and looking up ants
4. The fleet status data
5. The permanent sync monitor logging splits
"""

import msgspec
import orjson
import pytest

from antfarm.ant import NodeClient
from antfarm.errors import (
    AntNotFoundError,
    ConfigurationError,
    ProcessExitedError,
    SyncTimeoutError,
)
from antfarm.farm import Antfarm, AntfarmConfig
from antfarm.logging import LogCaller

from tests.unit.mocks import FakeAnt, FakeNodeClient, wait_until


@pytest.fixture
async def start_farm(recording_logger, process_env):
    farms: list[Antfarm] = []

    async def start(config: AntfarmConfig) -> Antfarm:
        farm = await Antfarm.new(config, recording_logger, env=process_env)
        farms.append(farm)
        return farm

    yield start

    for farm in farms:
        await farm.close()


class TestNewAntfarm:

    @pytest.mark.asyncio
    async def test_new_farm_connects_and_releases_barrier(self, start_farm, make_config, tmp_path):
        config = AntfarmConfig(
            data_dir=str(tmp_path),
            ant_configs=(
                make_config("ant-0", jobs=("gateway",)),
                make_config("ant-1", jobs=("gateway",)),
                make_config("ant-2"),
            ),
            wait_for_sync=True,
        )

        farm = await start_farm(config)

        assert [ant.name for ant in farm.ants] == ["ant-0", "ant-1", "ant-2"]
        assert farm.barrier.released

        hub = farm.ants[0]
        for ant in farm.ants[1:]:
            gateway = await ant.client.gateway_get()
            assert gateway.has_peer(hub.rpc_addr)

        groups = await farm.consensus_groups()
        assert len(groups) == 1

    @pytest.mark.asyncio
    async def test_failed_ant_stops_the_others(
        self, recording_logger, process_env, make_config, exiting_binary, tmp_path
    ):
        healthy = make_config("ant-0")
        config = AntfarmConfig(
            data_dir=str(tmp_path),
            ant_configs=(
                healthy,
                make_config("ant-1", siad_path=exiting_binary),
            ),
        )

        with pytest.raises(ProcessExitedError):
            await Antfarm.new(config, recording_logger, env=process_env)

        client = NodeClient(healthy.api_addr, password=healthy.api_password, timeout=1)
        try:
            assert await client.daemon_ready() is False

        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_duplicate_names_are_rejected(self, start_farm, make_config, tmp_path):
        farm = await start_farm(
            AntfarmConfig(data_dir=str(tmp_path), ant_configs=(make_config("ant-0"),))
        )

        with pytest.raises(ConfigurationError):
            await farm.add_ant(make_config("ant-0"))

        assert len(farm.ants) == 1


class TestManageAnts:

    @pytest.mark.asyncio
    async def test_add_get_remove(self, start_farm, make_config, tmp_path):
        farm = await start_farm(
            AntfarmConfig(data_dir=str(tmp_path), ant_configs=(make_config("ant-0"),))
        )

        added = await farm.add_ant(make_config("ant-1"))

        assert farm.get_ant_by_name("ant-1") is added

        await farm.remove_ant("ant-1")

        assert not added.is_running
        assert [ant.name for ant in farm.ants] == ["ant-0"]

        with pytest.raises(AntNotFoundError):
            farm.get_ant_by_name("ant-1")

    @pytest.mark.asyncio
    async def test_ants_json(self, start_farm, make_config, tmp_path):
        ant_config = make_config("ant-0", jobs=("gateway",))
        farm = await start_farm(
            AntfarmConfig(data_dir=str(tmp_path), ant_configs=(ant_config,))
        )

        ants = orjson.loads(farm.ants_json())

        assert len(ants) == 1
        assert ants[0]["rpc_addr"] == ant_config.rpc_addr
        assert ants[0]["jobs"] == ["gateway"]
        assert ants == msgspec.to_builtins(farm.ant_infos())

    @pytest.mark.asyncio
    async def test_close_stops_every_ant(self, recording_logger, process_env, make_config, tmp_path):
        farm = await Antfarm.new(
            AntfarmConfig(
                data_dir=str(tmp_path),
                ant_configs=(make_config("ant-0"), make_config("ant-1")),
            ),
            recording_logger,
            env=process_env,
        )

        await farm.close()

        assert all(not ant.is_running for ant in farm.ants)
        assert farm.thread_group.stopped


class TestSyncMonitor:

    @pytest.mark.asyncio
    async def test_split_is_logged(self, recording_logger, fast_env):
        farm = Antfarm(AntfarmConfig(), recording_logger, env=fast_env)
        farm.ants = [
            FakeAnt(name="ant-0", client=FakeNodeClient(height=10, block_id="A")),
            FakeAnt(name="ant-1", client=FakeNodeClient(height=12, block_id="B")),
        ]

        farm.start_sync_monitor()
        await wait_until(lambda: recording_logger.errors(LogCaller.ANTFARM.value))
        await farm.thread_group.stop()

        assert "2 consensus groups" in recording_logger.errors()[0].message

    @pytest.mark.asyncio
    async def test_wait_for_sync_times_out(self, recording_logger, fast_env):
        farm = Antfarm(AntfarmConfig(), recording_logger, env=fast_env)
        farm.ants = [
            FakeAnt(name="ant-0", client=FakeNodeClient(height=10, block_id="A")),
            FakeAnt(name="ant-1", client=FakeNodeClient(height=12, block_id="B")),
        ]

        with pytest.raises(SyncTimeoutError) as err:
            await farm.wait_for_sync(timeout=0.05)

        assert err.value.context["groups"] == 2

    @pytest.mark.asyncio
    async def test_wait_for_sync_returns_once_synced(self, recording_logger, fast_env):
        farm = Antfarm(AntfarmConfig(), recording_logger, env=fast_env)
        lagging = FakeNodeClient(height=9, block_id="A9")
        farm.ants = [
            FakeAnt(name="ant-0", client=FakeNodeClient(height=10, block_id="A")),
            FakeAnt(name="ant-1", client=lagging),
        ]

        async def catch_up():
            await wait_until(lambda: lagging.count("consensus_get") >= 2)
            lagging.height = 10
            lagging.block_id = "A"

        catching_up = farm.thread_group.launch(catch_up())

        await farm.wait_for_sync(timeout=5)
        await catching_up
