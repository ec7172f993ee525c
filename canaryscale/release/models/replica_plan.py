from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class ReplicaPlan:
    share_percent: int
    total_replicas: int
    stable_replicas: int
    candidate_replicas: int

    @classmethod
    def for_share(cls, share_percent: int, total_replicas: int):
        if total_replicas < 1:
            raise ValueError("Err. - total replica budget must be at least 1.")

        if share_percent < 0 or share_percent > 100:
            raise ValueError(
                f"Err. - share {share_percent} is outside of [0, 100]."
            )

        candidate_replicas = total_replicas * share_percent // 100

        return cls(
            share_percent=share_percent,
            total_replicas=total_replicas,
            stable_replicas=total_replicas - candidate_replicas,
            candidate_replicas=candidate_replicas,
        )
