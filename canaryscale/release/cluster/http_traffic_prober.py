import httpx

from canaryscale.release.models import ServiceRef


class HTTPTrafficProber:
    """
    Issues single GET requests against a service address. A request
    succeeds on any non-error status, every transport failure or
    timeout is reported as an unsuccessful probe instead of raised.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self):
        if self._client is None:
            self._client = httpx.AsyncClient(follow_redirects=True)

        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def probe_http(self, service: ServiceRef, timeout: float) -> bool:
        if self._client is None:
            self._client = httpx.AsyncClient(follow_redirects=True)

        try:
            response = await self._client.get(
                service.address,
                timeout=timeout,
            )

        except httpx.HTTPError:
            return False

        return response.is_error is False

    async def close(self):
        if self._client and self._owns_client:
            await self._client.aclose()
            self._client = None
