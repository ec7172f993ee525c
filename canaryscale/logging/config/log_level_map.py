from typing import Dict

from canaryscale.logging.models import LogLevel


class LogLevelMap:
    def __init__(self) -> None:
        self._levels: Dict[LogLevel, int] = {
            LogLevel.TRACE: 0,
            LogLevel.DEBUG: 1,
            LogLevel.INFO: 2,
            LogLevel.SUCCESS: 3,
            LogLevel.WARN: 4,
            LogLevel.ERROR: 5,
            LogLevel.CRITICAL: 6,
            LogLevel.FATAL: 7,
        }

    def __getitem__(self, level: LogLevel):
        return self._levels[level]
