import asyncio
import os

from .logger_stream import LoggerStream


class LoggerContext:
    def __init__(
        self,
        name: str | None = None,
        template: str | None = None,
        filename: str | None = None,
        directory: str | None = None,
        nested: bool = False,
    ) -> None:
        self.name = name
        self.template = template
        self.filename = filename
        self.directory = directory
        self.stream = LoggerStream(
            name=name,
            template=template,
            filename=filename,
            directory=directory,
        )
        self.nested = nested

    async def __aenter__(self):
        await self.stream.initialize()

        if self.stream._cwd is None:
            loop = asyncio.get_event_loop()
            self.stream._cwd = await loop.run_in_executor(
                None,
                os.getcwd,
            )

        if self.filename:
            await self.stream.open_file(
                self.filename,
                directory=self.directory,
                is_default=True,
            )

        return self.stream

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.nested is False:
            await self.stream.close()
