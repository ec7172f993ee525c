import asyncio


class LoggerProtocol(asyncio.streams.FlowControlMixin, asyncio.Protocol):
    """Write-only pipe protocol backing the stdout/stderr stream writers."""

    def __init__(self) -> None:
        super().__init__()
        self.transport: asyncio.BaseTransport | None = None

    def connection_made(self, transport: asyncio.BaseTransport) -> None:
        self.transport = transport

    def connection_lost(self, exc: Exception | None) -> None:
        super().connection_lost(exc)
        self.transport = None
