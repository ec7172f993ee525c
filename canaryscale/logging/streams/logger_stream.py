import asyncio
import datetime
import functools
import io
import os
import pathlib
import sys
import threading
from collections import defaultdict
from typing import (
    Callable,
    Dict,
    TypeVar,
)

import msgspec
import uvloop

from canaryscale.logging.config.logging_config import LoggingConfig
from canaryscale.logging.config.stream_type import StreamType
from canaryscale.logging.models import Entry, Log

from .protocol import LoggerProtocol

T = TypeVar('T', bound=Entry)


def patch_transport_close(
    transport: asyncio.Transport,
):

    transport_close = transport.close

    def close(*args, **kwargs):
        try:
            transport_close()

        except Exception:
            pass

    return close


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
        self._stream_writers: Dict[StreamType, asyncio.StreamWriter] = {}
        self._loop: asyncio.AbstractEventLoop | None = None

        self._files: Dict[str, io.FileIO] = {}
        self._file_locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._cwd: str | None = None
        self._default_logfile_path: str | None = None

        self._config = LoggingConfig()
        self._initialized: bool = False
        self._stderr: io.TextIOBase | None = None
        self._stdout: io.TextIOBase | None = None

    @property
    def initialized(self):
        return self._initialized

    async def initialize(self):

        async with self._init_lock:

            if self._initialized:
                return

            if self._loop is None:
                self._loop = asyncio.get_event_loop()

            if self._stdout is None or self._stdout.closed:
                self._stdout = await self._dup_stream(sys.stdout)

            if self._stderr is None or self._stderr.closed:
                self._stderr = await self._dup_stream(sys.stderr)

            for stream_type, stream in [
                (StreamType.STDOUT, self._stdout),
                (StreamType.STDERR, self._stderr),
            ]:
                if self._stream_writers.get(stream_type) is None:
                    writer = await self._create_stream_writer(stream)

                    if writer:
                        self._stream_writers[stream_type] = writer

            self._initialized = True

    async def _create_stream_writer(
        self,
        stream: io.TextIOBase,
    ) -> asyncio.StreamWriter | None:
        try:
            transport, protocol = await self._loop.connect_write_pipe(
                lambda: LoggerProtocol(), stream
            )

        except (ValueError, OSError):
            # Regular files and captured streams cannot back a pipe
            # transport, so those lines are written through the executor.
            return None

        if isinstance(self._loop, uvloop.Loop):
            try:
                transport.close = patch_transport_close(transport)

            except AttributeError:
                # Compiled transports do not accept attribute patches.
                pass

        return asyncio.StreamWriter(
            transport,
            protocol,
            None,
            self._loop,
        )

    async def _dup_stream(self, stream: io.TextIOBase):
        try:
            fileno = await self._loop.run_in_executor(
                None,
                stream.fileno,
            )

        except (ValueError, OSError):
            return stream

        stream_dup = await self._loop.run_in_executor(
            None,
            os.dup,
            fileno,
        )

        return await self._loop.run_in_executor(
            None,
            functools.partial(
                os.fdopen,
                stream_dup,
                mode="w",
            )
        )

    async def open_file(
        self,
        filename: str,
        directory: str | None = None,
        is_default: bool = False,
    ):
        if self._loop is None:
            self._loop = asyncio.get_event_loop()

        if self._cwd is None:
            self._cwd = await self._loop.run_in_executor(
                None,
                os.getcwd,
            )

        logfile_path = self._to_logfile_path(filename, directory=directory)

        async with self._file_locks[logfile_path]:
            if logfile_path not in self._files or self._files[logfile_path].closed:
                await self._loop.run_in_executor(
                    None,
                    self._open_file,
                    logfile_path,
                )

        if is_default:
            self._default_logfile_path = logfile_path

        return logfile_path

    def _open_file(
        self,
        logfile_path: str,
    ):
        resolved_path = pathlib.Path(logfile_path).absolute().resolve()
        logfile_directory = str(resolved_path.parent)
        path = str(resolved_path)

        if not os.path.exists(logfile_directory):
            os.makedirs(logfile_directory)

        self._files[logfile_path] = open(path, "ab+")

    def _to_logfile_path(
        self,
        filename: str,
        directory: str | None = None,
    ):
        filename_path = pathlib.Path(filename)

        if filename_path.suffix != ".json":
            raise ValueError("Err. - file must be JSON file for logs.")

        if self._config.directory:
            directory = self._config.directory

        elif directory is None:
            directory: str = os.path.join(self._cwd)

        logfile_path: str = os.path.join(directory, filename_path)

        return logfile_path

    async def close(self):
        await asyncio.gather(
            *[self._close_file(logfile_path) for logfile_path in self._files]
        )

        for writer in self._stream_writers.values():
            if writer.is_closing() is False:
                await writer.drain()

        self._initialized = False

    async def _close_file(self, logfile_path: str):
        async with self._file_locks[logfile_path]:
            await self._loop.run_in_executor(
                None,
                self._close_file_at_path,
                logfile_path,
            )

    def _close_file_at_path(self, logfile_path: str):
        if (
            logfile := self._files.get(logfile_path)
        ) and logfile.closed is False:
            logfile.close()

    async def log(
        self,
        entry: T | Log[T],
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
            directory = str(logfile_path.parent.absolute()) if is_logfile else str(logfile_path.absolute())

        if template is None:
            template = self._default_template

        if filename is None:
            filename = self._default_logfile

        if directory is None:
            directory = self._default_log_directory

        await self._log(
            entry,
            template=template,
            filter=filter,
        )

        if filename:
            await self._log_to_file(
                entry,
                filename=filename,
                directory=directory,
                filter=filter,
            )

    async def _log(
        self,
        entry_or_log: T | Log[T],
        template: str | None = None,
        filter: Callable[[T], bool] | None = None,
    ):
        entry: Entry = None
        if isinstance(entry_or_log, Log):
            entry = entry_or_log.entry

        else:
            entry = entry_or_log

        if self._config.enabled(self._name, entry.level) is False:
            return

        if filter and filter(entry) is False:
            return

        if self._initialized is False:
            await self.initialize()

        if template is None:
            template = "{timestamp} - {level} - {thread_id} - {filename}:{function_name}.{line_number} - {message}"

        if isinstance(entry_or_log, Log):
            log_file = entry_or_log.filename
            line_number = entry_or_log.line_number
            function_name = entry_or_log.function_name

        else:
            log_file, line_number, function_name = self._find_caller()

        line = entry.to_template(
            template,
            context={
                "filename": log_file,
                "function_name": function_name,
                "line_number": line_number,
                "thread_id": threading.get_native_id(),
                "timestamp": datetime.datetime.now(datetime.UTC).isoformat(),
            },
        )

        output = self._config.output
        stream_writer = self._stream_writers.get(output)

        try:
            if stream_writer and stream_writer.is_closing() is False:
                stream_writer.write(line.encode() + b"\n")
                await stream_writer.drain()

            else:
                stream = self._stdout if output == StreamType.STDOUT else self._stderr
                await self._loop.run_in_executor(
                    None,
                    self._write_line,
                    stream,
                    line,
                )

        except Exception as err:
            error_template = "{timestamp} - {level} - {thread_id}.{filename}:{function_name}.{line_number} - {error}"

            if self._stderr.closed is False:
                await self._loop.run_in_executor(
                    None,
                    self._write_line,
                    self._stderr,
                    entry.to_template(
                        error_template,
                        context={
                            "filename": log_file,
                            "function_name": function_name,
                            "line_number": line_number,
                            "error": str(err),
                            "thread_id": threading.get_native_id(),
                            "timestamp": datetime.datetime.now(datetime.UTC).isoformat(),
                        },
                    ),
                )

    def _write_line(
        self,
        stream: io.TextIOBase,
        line: str,
    ):
        if stream.closed is False:
            stream.write(line + "\n")
            stream.flush()

    async def _log_to_file(
        self,
        entry_or_log: T | Log[T],
        filename: str | None = None,
        directory: str | None = None,
        filter: Callable[[T], bool] | None = None,
    ):
        if isinstance(entry_or_log, Log):
            log = entry_or_log

        else:
            log_file, line_number, function_name = self._find_caller()
            log = Log(
                entry=entry_or_log,
                filename=log_file,
                function_name=function_name,
                line_number=line_number,
            )

        if self._config.enabled(self._name, log.entry.level) is False:
            return

        if filter and filter(log.entry) is False:
            return

        if filename:
            logfile_path = await self.open_file(
                filename,
                directory=directory,
            )

        else:
            logfile_path = self._default_logfile_path

        if logfile_path is None:
            return

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
        frame = sys._getframe(3)
        code = frame.f_code

        return (
            code.co_filename,
            frame.f_lineno,
            code.co_name,
        )
