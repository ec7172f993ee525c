import asyncio
import os
import socket
import time
from pathlib import Path

import orjson

from canaryscale.release.exceptions import RunLeaseHeldError
from canaryscale.release.models import ReleaseConfig


class RunLease:
    """
    Exclusive marker for one release run against one workload pair.
    The lease file is created with O_EXCL so two runs can never both
    hold it. A lease older than its TTL belongs to a run that died
    without releasing it and is taken over.
    """

    __slots__ = (
        "_path",
        "_ttl",
        "_holder",
        "_record",
        "_loop",
    )

    def __init__(
        self,
        directory: str | Path,
        namespace: str,
        stable_name: str,
        candidate_name: str,
        ttl: float = 7200.0,
        holder: str | None = None,
    ) -> None:
        self._path = Path(directory) / f"{namespace}.{stable_name}.{candidate_name}.lease"
        self._ttl = ttl
        self._holder = holder or socket.gethostname()
        self._record: dict | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    @classmethod
    def for_config(cls, config: ReleaseConfig):
        return cls(
            config.run_lease_directory,
            config.namespace,
            config.stable.name,
            config.candidate.name,
            ttl=config.run_lease_ttl,
        )

    @property
    def path(self) -> Path:
        return self._path

    @property
    def held(self) -> bool:
        return self._record is not None

    async def __aenter__(self):
        await self.acquire()
        return self

    async def __aexit__(self, *_):
        await self.release()

    async def acquire(self) -> None:
        self._loop = asyncio.get_running_loop()
        self._record = await self._loop.run_in_executor(
            None,
            self._acquire_sync,
        )

    async def release(self) -> None:
        if self._record is None:
            return

        loop = self._loop or asyncio.get_running_loop()
        await loop.run_in_executor(
            None,
            self._release_sync,
        )

        self._record = None

    def _acquire_sync(self) -> dict:
        self._path.parent.mkdir(parents=True, exist_ok=True)

        record = {
            "holder": self._holder,
            "pid": os.getpid(),
            "acquired_at": time.time(),
        }

        try:
            self._create(record)
            return record

        except FileExistsError:
            pass

        existing = self._read()
        if not self._is_stale(existing):
            raise RunLeaseHeldError(
                f"Err. - release already running, lease {self._path} held by "
                f"{existing.get('holder', 'unknown')} (pid {existing.get('pid', 'unknown')})"
            )

        try:
            self._path.unlink()

        except FileNotFoundError:
            pass

        try:
            self._create(record)

        except FileExistsError as err:
            raise RunLeaseHeldError(
                f"Err. - lease {self._path} was taken over by another run"
            ) from err

        return record

    def _create(self, record: dict) -> None:
        fd = os.open(
            self._path,
            os.O_WRONLY | os.O_CREAT | os.O_EXCL,
            0o644,
        )

        with os.fdopen(fd, "wb") as lease_file:
            lease_file.write(orjson.dumps(record))
            lease_file.flush()
            os.fsync(lease_file.fileno())

    def _read(self) -> dict:
        try:
            with open(self._path, "rb") as lease_file:
                record = orjson.loads(lease_file.read())

            if isinstance(record, dict):
                return record

        except (OSError, orjson.JSONDecodeError):
            pass

        # Unreadable or half-written lease, age it by its mtime.
        try:
            acquired_at = self._path.stat().st_mtime

        except OSError:
            acquired_at = 0.0

        return {"acquired_at": acquired_at}

    def _is_stale(self, record: dict) -> bool:
        acquired_at = record.get("acquired_at")
        if not isinstance(acquired_at, (int, float)):
            return True

        return time.time() - acquired_at > self._ttl

    def _release_sync(self) -> None:
        existing = self._read()

        if (
            existing.get("pid") != self._record.get("pid")
            or existing.get("acquired_at") != self._record.get("acquired_at")
        ):
            # Taken over after going stale, the file is no longer ours.
            return

        try:
            self._path.unlink()

        except FileNotFoundError:
            pass
