from __future__ import annotations
import os
import pathlib
from pydantic import BaseModel, StrictBool, StrictStr, StrictInt, field_validator
from typing import Callable, Dict, Literal, Union

PrimaryType = Union[str, int, float, bytes, bool]


def to_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


class Env(BaseModel):
    CANARY_NAMESPACE: StrictStr = "lab"
    CANARY_STABLE_WORKLOAD: StrictStr = "webapp-stable"
    CANARY_CANDIDATE_WORKLOAD: StrictStr = "webapp-canary"
    CANARY_CONTAINER_NAME: StrictStr = "nginx"
    CANARY_SERVICE_NAME: StrictStr = "webapp-canary-service"
    CANARY_SERVICE_URL: StrictStr | None = None
    CANARY_STABLE_IMAGE: StrictStr = "nginx:1.21"
    CANARY_CANDIDATE_IMAGE: StrictStr = "nginx:1.22"
    CANARY_STAGES: StrictStr = "10,25,50,100"
    CANARY_TOTAL_REPLICAS: StrictInt = 10
    CANARY_CONVERGENCE_TIMEOUT: StrictStr = "300s"
    CANARY_CONVERGENCE_POLL_INTERVAL: StrictStr = "2s"
    CANARY_SOAK_DURATION: StrictStr = "60s"
    CANARY_ERROR_RATE_THRESHOLD: StrictInt = 5
    CANARY_ERROR_RATE_SELECTOR: StrictStr = "app=webapp"
    CANARY_ERROR_PATTERN: StrictStr = "ERROR|500|Exception"
    CANARY_REQUEST_PATTERN: StrictStr = "REQUEST|GET|POST"
    CANARY_LOG_TAIL_LINES: StrictInt = 100
    CANARY_SYNTHETIC_SAMPLE_SIZE: StrictInt = 5
    CANARY_SYNTHETIC_REQUEST_TIMEOUT: StrictStr = "5s"
    CANARY_SYNTHETIC_REQUEST_DELAY: StrictStr = "1s"
    CANARY_LOAD_GENERATOR_ENABLED: StrictBool = True
    CANARY_LOAD_GENERATOR_INTERVAL: StrictStr = "0.5s"
    CANARY_SCALE_RETRIES: StrictInt = 3
    CANARY_SCALE_RETRY_INTERVAL: StrictStr = "1s"
    CANARY_RUN_LEASE_ENABLED: StrictBool = True
    CANARY_RUN_LEASE_DIRECTORY: StrictStr = os.path.join(os.getcwd(), ".canaryscale")
    CANARY_RUN_LEASE_TTL: StrictStr = "2h"
    CANARY_LOG_LEVEL: Literal[
        "trace", "debug", "info", "success", "warn", "error", "critical", "fatal"
    ] = "info"
    CANARY_LOG_PATH: StrictStr | None = None

    @field_validator("CANARY_LOG_PATH")
    @classmethod
    def validate_log_path(cls, value: str | None) -> str | None:
        if value is not None and pathlib.Path(value).suffix != ".json":
            raise ValueError("Err. - log path must be a .json file")

        return value

    @classmethod
    def types_map(cls) -> Dict[str, Callable[[str], PrimaryType]]:
        return {
            "CANARY_NAMESPACE": str,
            "CANARY_STABLE_WORKLOAD": str,
            "CANARY_CANDIDATE_WORKLOAD": str,
            "CANARY_CONTAINER_NAME": str,
            "CANARY_SERVICE_NAME": str,
            "CANARY_SERVICE_URL": str,
            "CANARY_STABLE_IMAGE": str,
            "CANARY_CANDIDATE_IMAGE": str,
            "CANARY_STAGES": str,
            "CANARY_TOTAL_REPLICAS": int,
            "CANARY_CONVERGENCE_TIMEOUT": str,
            "CANARY_CONVERGENCE_POLL_INTERVAL": str,
            "CANARY_SOAK_DURATION": str,
            "CANARY_ERROR_RATE_THRESHOLD": int,
            "CANARY_ERROR_RATE_SELECTOR": str,
            "CANARY_ERROR_PATTERN": str,
            "CANARY_REQUEST_PATTERN": str,
            "CANARY_LOG_TAIL_LINES": int,
            "CANARY_SYNTHETIC_SAMPLE_SIZE": int,
            "CANARY_SYNTHETIC_REQUEST_TIMEOUT": str,
            "CANARY_SYNTHETIC_REQUEST_DELAY": str,
            "CANARY_LOAD_GENERATOR_ENABLED": to_bool,
            "CANARY_LOAD_GENERATOR_INTERVAL": str,
            "CANARY_SCALE_RETRIES": int,
            "CANARY_SCALE_RETRY_INTERVAL": str,
            "CANARY_RUN_LEASE_ENABLED": to_bool,
            "CANARY_RUN_LEASE_DIRECTORY": str,
            "CANARY_RUN_LEASE_TTL": str,
            "CANARY_LOG_LEVEL": str,
            "CANARY_LOG_PATH": str,
        }
