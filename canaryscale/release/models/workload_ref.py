from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class WorkloadRef:
    """A deployable unit - one Deployment running one image."""

    name: str
    namespace: str
    image: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass(slots=True, frozen=True)
class ServiceRef:
    name: str
    namespace: str
    url: str | None = None

    @property
    def address(self) -> str:
        if self.url:
            return self.url

        return f"http://{self.name}.{self.namespace}.svc.cluster.local"

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass(slots=True, frozen=True)
class InstanceRef:
    name: str
    namespace: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"
