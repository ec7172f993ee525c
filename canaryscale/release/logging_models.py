"""
Logging models for release runs.

Release models identify the run (release name, current state) and
probe models identify the probe and the stage share it ran at, so
every line of a run can be correlated from structured logs alone.
"""

from canaryscale.logging.models import Entry, LogLevel


class ReleaseDebug(Entry, kw_only=True):
    release: str
    state: str
    level: LogLevel = LogLevel.DEBUG


class ReleaseInfo(Entry, kw_only=True):
    release: str
    state: str
    level: LogLevel = LogLevel.INFO


class ReleaseSuccess(Entry, kw_only=True):
    release: str
    state: str
    level: LogLevel = LogLevel.SUCCESS


class ReleaseWarning(Entry, kw_only=True):
    release: str
    state: str
    level: LogLevel = LogLevel.WARN


class ReleaseError(Entry, kw_only=True):
    release: str
    state: str
    level: LogLevel = LogLevel.ERROR


class ProbeSuccess(Entry, kw_only=True):
    probe: str
    stage_share: int | None = None
    level: LogLevel = LogLevel.SUCCESS


class ProbeWarning(Entry, kw_only=True):
    probe: str
    stage_share: int | None = None
    level: LogLevel = LogLevel.WARN


class ProbeError(Entry, kw_only=True):
    probe: str
    stage_share: int | None = None
    level: LogLevel = LogLevel.ERROR
