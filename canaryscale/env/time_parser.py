import re
from datetime import timedelta


class TimeParser:
    def __init__(self) -> None:
        self._units = {
            "s": "seconds",
            "m": "minutes",
            "h": "hours",
            "d": "days",
            "w": "weeks",
        }
        self._amount = re.compile(
            r"(?P<val>\d+(\.\d+)?)(?P<unit>[smhdw]?)",
            flags=re.I,
        )
        self._duration = re.compile(
            r"(\d+(\.\d+)?[smhdw]?)+",
            flags=re.I,
        )

    def parse(self, time_amount: str | int | float) -> float:
        if isinstance(time_amount, (int, float)):
            return float(time_amount)

        time_amount = time_amount.strip()

        if self._duration.fullmatch(time_amount) is None:
            raise ValueError(
                f"Err. - invalid duration {time_amount!r}, expected values like 300s, 1m30s or 0.5s"
            )

        return float(
            timedelta(
                **{
                    self._units.get(
                        m.group("unit").lower(),
                        "seconds"
                    ): float(
                        m.group("val")
                    )
                    for m in self._amount.finditer(time_amount)
                }
            ).total_seconds()
        )
