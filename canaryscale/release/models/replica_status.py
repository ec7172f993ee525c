from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class ReplicaStatus:
    ready: int = 0
    desired: int = 0
