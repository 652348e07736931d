import asyncio
import io
import os
import pathlib
import sys
from collections import defaultdict
from typing import (
    Callable,
    Dict,
    TypeVar,
)

import msgspec

from antfarm.logging.config import LoggingConfig, StreamType
from antfarm.logging.models import Entry, Log

T = TypeVar('T', bound=Entry)


DEFAULT_TEMPLATE = "{timestamp} - {level} - {thread_id} - {filename}:{function_name}.{line_number} - {message}"
ERROR_TEMPLATE = "{timestamp} - {level} - {thread_id}.{filename}:{function_name}.{line_number} - {error}"


class LoggerStream:
    def __init__(
        self,
        name: str | None = None,
        template: str | None = None,
        filename: str | None = None,
        directory: str | None = None,
    ) -> None:
        if name is None:
            name = "default"

        self._name = name
        self._default_template = template
        self._default_logfile = filename
        self._default_log_directory = directory

        self._init_lock = asyncio.Lock()
        self._loop: asyncio.AbstractEventLoop | None = None

        self._files: Dict[str, io.BufferedRandom] = {}
        self._file_locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._cwd: str | None = None
        self._default_logfile_path: str | None = None

        self._config = LoggingConfig()
        self._initialized: bool = False
        self._closed = False

    @property
    def closed(self):
        return self._closed

    async def initialize(self):
        async with self._init_lock:

            if self._initialized:
                return

            self._loop = asyncio.get_running_loop()

            if self._cwd is None:
                self._cwd = await self._loop.run_in_executor(
                    None,
                    os.getcwd,
                )

            if self._default_logfile:
                await self.open_file(
                    self._default_logfile,
                    directory=self._default_log_directory,
                    is_default=True,
                )

            self._initialized = True
            self._closed = False

    async def open_file(
        self,
        filename: str,
        directory: str | None = None,
        is_default: bool = False,
    ):
        logfile_path = self._to_logfile_path(filename, directory=directory)

        async with self._file_locks[logfile_path]:
            await self._loop.run_in_executor(
                None,
                self._open_file,
                logfile_path,
            )

        if is_default:
            self._default_logfile_path = logfile_path

    def _open_file(
        self,
        logfile_path: str,
    ):
        resolved_path = pathlib.Path(logfile_path).absolute().resolve()
        resolved_path.parent.mkdir(parents=True, exist_ok=True)

        self._files[logfile_path] = open(str(resolved_path), "ab+")

    def _to_logfile_path(
        self,
        filename: str,
        directory: str | None = None,
    ):
        filename_path = pathlib.Path(filename)

        assert (
            filename_path.suffix == ".json"
        ), "Err. - file must be JSON file for logs."

        if self._config.directory:
            directory = self._config.directory

        elif directory is None:
            directory = self._cwd

        return os.path.join(directory, filename_path)

    async def log(
        self,
        entry: T | Log[T],
        template: str | None = None,
        filter: Callable[[T], bool] | None = None,
    ):
        if self._closed:
            return

        if self._initialized is False:
            await self.initialize()

        if isinstance(entry, Log):
            log = entry

        else:
            log_file, line_number, function_name = self._find_caller()
            log = Log(
                entry=entry,
                filename=log_file,
                function_name=function_name,
                line_number=line_number,
            )

        if self._config.enabled(log.entry.level) is False:
            return

        if filter and filter(log.entry) is False:
            return

        await self._log_to_stream(log, template=template)

        if self._default_logfile_path:
            await self._log_to_file(log, self._default_logfile_path)

    async def _log_to_stream(
        self,
        log: Log[T],
        template: str | None = None,
    ):
        entry = log.entry

        if template is None:
            template = self._default_template

        if template is None:
            template = getattr(entry, "template", DEFAULT_TEMPLATE)

        context = {
            "filename": log.filename,
            "function_name": log.function_name,
            "line_number": log.line_number,
            "thread_id": log.thread_id,
            "timestamp": log.timestamp,
        }

        stream = sys.stdout if self._config.output == StreamType.STDOUT else sys.stderr

        try:
            await self._loop.run_in_executor(
                None,
                self._write_to_stream,
                entry.to_template(template, context=context) + "\n",
                stream,
            )

        except Exception as err:
            context["error"] = str(err)
            self._write_to_stream(
                entry.to_template(ERROR_TEMPLATE, context=context) + "\n",
                sys.stderr,
            )

    def _write_to_stream(self, line: str, stream: io.TextIOBase):
        stream.write(line)
        stream.flush()

    async def _log_to_file(
        self,
        log: Log[T],
        logfile_path: str,
    ):
        async with self._file_locks[logfile_path]:
            await self._loop.run_in_executor(
                None,
                self._write_to_file,
                log,
                logfile_path,
            )

    def _write_to_file(
        self,
        log: Log,
        logfile_path: str,
    ):
        if (
            logfile := self._files.get(logfile_path)
        ) and (
            logfile.closed is False
        ):
            logfile.write(msgspec.json.encode(log) + b"\n")
            logfile.flush()

    def _find_caller(self):
        """
        Find the stack frame of the caller so that we can note the source
        file name, line number and function name.
        """
        frame = sys._getframe(2)
        code = frame.f_code

        return (
            code.co_filename,
            frame.f_lineno,
            code.co_name,
        )

    async def close(self):
        if self._closed or self._loop is None:
            self._closed = True
            return

        self._closed = True

        for logfile_path in list(self._files):
            async with self._file_locks[logfile_path]:
                await self._loop.run_in_executor(
                    None,
                    self._close_file_at_path,
                    logfile_path,
                )

        self._initialized = False

    def _close_file_at_path(self, logfile_path: str):
        if (
            logfile := self._files.get(logfile_path)
        ) and logfile.closed is False:
            logfile.close()

