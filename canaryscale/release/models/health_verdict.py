from dataclasses import dataclass


@dataclass(slots=True)
class HealthVerdict:
    probe_name: str
    passed: bool
    detail: str = ""
    warning: bool = False
