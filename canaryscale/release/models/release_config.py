from dataclasses import dataclass

from canaryscale.env import Env, TimeParser

from .stage_spec import StageSpec
from .workload_ref import ServiceRef, WorkloadRef


@dataclass(slots=True, frozen=True)
class ReleaseConfig:
    """
    Immutable settings for one release run. Every component receives
    this value explicitly, nothing reads configuration from globals.
    Durations are in seconds.
    """

    stable: WorkloadRef
    candidate: WorkloadRef
    service: ServiceRef
    stages: StageSpec
    container_name: str = "nginx"
    total_replicas: int = 10
    convergence_timeout: float = 300.0
    convergence_poll_interval: float = 2.0
    soak_duration: float = 60.0
    error_rate_threshold: int = 5
    error_rate_selector: str = "app=webapp"
    error_pattern: str = "ERROR|500|Exception"
    request_pattern: str = "REQUEST|GET|POST"
    log_tail_lines: int = 100
    synthetic_sample_size: int = 5
    synthetic_request_timeout: float = 5.0
    synthetic_request_delay: float = 1.0
    load_generator_enabled: bool = True
    load_generator_interval: float = 0.5
    scale_retries: int = 3
    scale_retry_interval: float = 1.0
    run_lease_enabled: bool = True
    run_lease_directory: str = ".canaryscale"
    run_lease_ttl: float = 7200.0

    def __post_init__(self):
        if self.total_replicas < 1:
            raise ValueError("Err. - total replica budget must be at least 1.")

        if self.synthetic_sample_size < 1:
            raise ValueError("Err. - synthetic sample size must be at least 1.")

        if self.scale_retries < 1:
            raise ValueError("Err. - scale calls need at least one attempt.")

    @property
    def namespace(self) -> str:
        return self.stable.namespace

    @property
    def release_name(self) -> str:
        return f"{self.namespace}/{self.stable.name}->{self.candidate.name}"

    @classmethod
    def from_env(cls, env: Env):
        parser = TimeParser()
        namespace = env.CANARY_NAMESPACE

        return cls(
            stable=WorkloadRef(
                name=env.CANARY_STABLE_WORKLOAD,
                namespace=namespace,
                image=env.CANARY_STABLE_IMAGE,
            ),
            candidate=WorkloadRef(
                name=env.CANARY_CANDIDATE_WORKLOAD,
                namespace=namespace,
                image=env.CANARY_CANDIDATE_IMAGE,
            ),
            service=ServiceRef(
                name=env.CANARY_SERVICE_NAME,
                namespace=namespace,
                url=env.CANARY_SERVICE_URL,
            ),
            stages=StageSpec.parse(env.CANARY_STAGES),
            container_name=env.CANARY_CONTAINER_NAME,
            total_replicas=env.CANARY_TOTAL_REPLICAS,
            convergence_timeout=parser.parse(env.CANARY_CONVERGENCE_TIMEOUT),
            convergence_poll_interval=parser.parse(env.CANARY_CONVERGENCE_POLL_INTERVAL),
            soak_duration=parser.parse(env.CANARY_SOAK_DURATION),
            error_rate_threshold=env.CANARY_ERROR_RATE_THRESHOLD,
            error_rate_selector=env.CANARY_ERROR_RATE_SELECTOR,
            error_pattern=env.CANARY_ERROR_PATTERN,
            request_pattern=env.CANARY_REQUEST_PATTERN,
            log_tail_lines=env.CANARY_LOG_TAIL_LINES,
            synthetic_sample_size=env.CANARY_SYNTHETIC_SAMPLE_SIZE,
            synthetic_request_timeout=parser.parse(env.CANARY_SYNTHETIC_REQUEST_TIMEOUT),
            synthetic_request_delay=parser.parse(env.CANARY_SYNTHETIC_REQUEST_DELAY),
            load_generator_enabled=env.CANARY_LOAD_GENERATOR_ENABLED,
            load_generator_interval=parser.parse(env.CANARY_LOAD_GENERATOR_INTERVAL),
            scale_retries=env.CANARY_SCALE_RETRIES,
            scale_retry_interval=parser.parse(env.CANARY_SCALE_RETRY_INTERVAL),
            run_lease_enabled=env.CANARY_RUN_LEASE_ENABLED,
            run_lease_directory=env.CANARY_RUN_LEASE_DIRECTORY,
            run_lease_ttl=parser.parse(env.CANARY_RUN_LEASE_TTL),
        )
