import asyncio
import datetime
import io
import os
import pathlib
import sys
import threading
from collections import defaultdict
from typing import Callable, Dict, TypeVar

import msgspec

from pulseboard.logging.config import LoggingConfig, StreamType
from pulseboard.logging.models import Entry, Log

T = TypeVar("T", bound=Entry)

DEFAULT_TEMPLATE = "{timestamp} - {level} - {thread_id} - {filename}:{function_name}.{line_number} - {message}"


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

        self._config = LoggingConfig()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._files: Dict[str, io.BufferedRandom] = {}
        self._file_locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._cwd: str | None = None
        self._initialized = False
        self._closed = False

    async def initialize(self):
        if self._initialized:
            return

        if self._loop is None:
            self._loop = asyncio.get_running_loop()

        if self._cwd is None:
            self._cwd = await self._loop.run_in_executor(None, os.getcwd)

        self._closed = False
        self._initialized = True

    async def log(
        self,
        entry: T | Log,
        template: str | None = None,
        path: str | None = None,
        filter: Callable[[T], bool] | None = None,
    ):
        filename: str | None = None
        directory: str | None = None

        if path:
            logfile_path = pathlib.Path(path)
            is_logfile = len(logfile_path.suffix) > 0

            filename = logfile_path.name if is_logfile else None
            directory = (
                str(logfile_path.parent.absolute())
                if is_logfile
                else str(logfile_path.absolute())
            )

        if template is None:
            template = self._default_template

        if filename is None:
            filename = self._default_logfile

        if directory is None:
            directory = self._default_log_directory

        if filename or self._config.directory:
            await self._log_to_file(
                entry,
                filename=filename or f"{self._name}.json",
                directory=directory,
                filter=filter,
            )

        else:
            await self._log(
                entry,
                template=template,
                filter=filter,
            )

    async def _log(
        self,
        entry_or_log: T | Log,
        template: str | None = None,
        filter: Callable[[T], bool] | None = None,
    ):
        entry = entry_or_log.entry if isinstance(entry_or_log, Log) else entry_or_log

        if self._closed or self._config.enabled(self._name, entry.level) is False:
            return

        if filter and filter(entry) is False:
            return

        if template is None:
            template = DEFAULT_TEMPLATE

        log = self._to_log(entry_or_log)

        stream = sys.stdout if self._config.output == StreamType.STDOUT else sys.stderr

        try:
            stream.write(
                entry.to_template(
                    template,
                    context={
                        "filename": log.filename,
                        "function_name": log.function_name,
                        "line_number": log.line_number,
                        "thread_id": log.thread_id,
                        "timestamp": log.timestamp,
                    },
                )
                + "\n"
            )
            stream.flush()

        except (KeyError, ValueError, OSError) as err:
            sys.__stderr__.write(f"{log.timestamp} - logging error - {err}\n")

    async def _log_to_file(
        self,
        entry_or_log: T | Log,
        filename: str,
        directory: str | None = None,
        filter: Callable[[T], bool] | None = None,
    ):
        entry = entry_or_log.entry if isinstance(entry_or_log, Log) else entry_or_log

        if self._closed or self._config.enabled(self._name, entry.level) is False:
            return

        if filter and filter(entry) is False:
            return

        if self._loop is None:
            await self.initialize()

        logfile_path = self._to_logfile_path(filename, directory=directory)
        log = self._to_log(entry_or_log)

        async with self._file_locks[logfile_path]:
            if self._files.get(logfile_path) is None:
                self._files[logfile_path] = await self._loop.run_in_executor(
                    None,
                    self._open_file,
                    logfile_path,
                )

            await self._loop.run_in_executor(
                None,
                self._write_to_file,
                log,
                logfile_path,
            )

    def _open_file(self, logfile_path: str):
        pathlib.Path(logfile_path).parent.mkdir(parents=True, exist_ok=True)
        return open(logfile_path, "ab+")

    def _write_to_file(
        self,
        log: Log,
        logfile_path: str,
    ):
        if (logfile := self._files.get(logfile_path)) and logfile.closed is False:
            logfile.write(msgspec.json.encode(log) + b"\n")
            logfile.flush()

    def _to_logfile_path(
        self,
        filename: str,
        directory: str | None = None,
    ):
        filename_path = pathlib.Path(filename)

        assert filename_path.suffix == ".json", "Err. - file must be JSON file for logs."

        if self._config.directory:
            directory = self._config.directory

        elif directory is None:
            directory = self._cwd or os.getcwd()

        return os.path.join(directory, filename_path)

    def _to_log(self, entry_or_log: T | Log) -> Log:
        if isinstance(entry_or_log, Log):
            return entry_or_log

        frame = sys._getframe(3)
        code = frame.f_code

        return Log(
            entry=entry_or_log,
            filename=code.co_filename,
            function_name=code.co_name,
            line_number=frame.f_lineno,
            thread_id=threading.get_native_id(),
            timestamp=datetime.datetime.now(datetime.timezone.utc).isoformat(),
        )

    async def close(self):
        self._closed = True

        for logfile_path in list(self._files):
            async with self._file_locks[logfile_path]:
                logfile = self._files.pop(logfile_path)
                if self._loop and logfile.closed is False:
                    await self._loop.run_in_executor(None, logfile.close)

        self._initialized = False

    def abort(self):
        self._closed = True

        for logfile in self._files.values():
            if logfile.closed is False:
                try:
                    logfile.close()

                except OSError:
                    pass

        self._files.clear()
