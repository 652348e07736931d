"""
Tests for the antfarm logger.

Covers:
1. Ant and farm entries rendering their caller and data directory
2. Level filtering through LoggingConfig
3. JSON log files written next to the stream output
"""

import pytest

from antfarm.logging import LogCaller, Logger, LogLevel
from antfarm.logging.antfarm_logging_models import AntDebug, AntError, FarmInfo
from antfarm.logging.config import LoggingConfig
from antfarm.logging.streams.logger_stream import LoggerStream


class TestEntryTemplates:

    def test_ant_entry_renders_caller_and_data_dir(self):
        entry = AntError(
            message="can't get wallet info",
            caller=LogCaller.ANT_BALANCE_MAINTAINER.value,
            data_dir="/tmp/ant-0",
        )

        line = entry.to_template(entry.template, context={"timestamp": "now"})

        assert line == "now - ERROR - ant > balanceMaintainer - /tmp/ant-0: can't get wallet info"

    def test_farm_entry_renders_caller(self):
        entry = FarmInfo(message="antfarm started", caller=LogCaller.ANTFARM.value)

        line = entry.to_template(entry.template, context={"timestamp": "now"})

        assert line == "now - INFO - antfarm: antfarm started"


class TestLogLevel:

    @pytest.mark.parametrize(
        "name,level",
        [("debug", LogLevel.DEBUG), ("ERROR", LogLevel.ERROR), ("warn", LogLevel.WARN)],
    )
    def test_to_level(self, name, level):
        assert LogLevel.to_level(name) == level

    def test_unknown_level(self):
        assert LogLevel.to_level("verbose") is None

    def test_enabled_respects_configured_level(self):
        config = LoggingConfig()
        config.update(log_level="error")

        assert config.enabled(LogLevel.ERROR)
        assert not config.enabled(LogLevel.DEBUG)


class TestLogger:

    @pytest.mark.asyncio
    async def test_writes_stream_and_json_file(self, tmp_path, capsys):
        logger = Logger()
        logger.configure(path=str(tmp_path / "antfarm.json"))

        await logger.log(
            AntError(
                message="ant has less than 2 peers: 1",
                caller=LogCaller.ANT_GATEWAY.value,
                data_dir="/tmp/ant-0",
            )
        )
        await logger.close()

        output = capsys.readouterr().out
        assert "ERROR - ant > gateway - /tmp/ant-0: ant has less than 2 peers: 1" in output

        lines = (tmp_path / "antfarm.json").read_text().splitlines()
        assert len(lines) == 1
        assert '"caller":"ant > gateway"' in lines[0]

    @pytest.mark.asyncio
    async def test_entries_below_level_are_dropped(self, tmp_path, capsys):
        LoggingConfig().update(log_level="info")

        stream = LoggerStream(filename="antfarm.json", directory=str(tmp_path))
        await stream.log(
            AntDebug(
                message="init wallet",
                caller=LogCaller.ANT_JOB_RUNNER.value,
                data_dir="/tmp/ant-0",
            )
        )
        await stream.close()

        assert capsys.readouterr().out == ""
        assert (tmp_path / "antfarm.json").read_text() == ""

    @pytest.mark.asyncio
    async def test_closed_stream_drops_entries(self, tmp_path, capsys):
        stream = LoggerStream(filename="antfarm.json", directory=str(tmp_path))
        await stream.initialize()
        await stream.close()

        await stream.log(FarmInfo(message="late", caller=LogCaller.ANTFARM.value))

        assert capsys.readouterr().out == ""
