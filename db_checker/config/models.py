"""Pydantic configuration models for the connectivity checker."""

import re
from typing import List, Literal, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


DEFAULT_CA_FILE = "/etc/ssl/certs/ca-certificates.crt"
DEFAULT_CHECK_INTERVAL = 30.0
DEFAULT_METRICS_NAMESPACE = "db"

METRIC_NAME_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")

DEFAULT_PORTS = {
    "mysql": 3306,
    "postgres": 5432,
    "mongodb": 27017,
}


class TargetDescriptor(BaseModel):
    """One database endpoint to check."""

    model_config = ConfigDict(frozen=True)

    driver: Literal["mysql", "postgres", "mongodb"] = "mysql"
    host: str
    port: int = 0  # 0 selects the driver default
    name: str
    user: str = ""
    password: str = Field(default="", repr=False)
    tls: bool = False
    tls_ca_file: str = DEFAULT_CA_FILE
    # Chain is verified against tls_ca_file either way; only the peer name check is optional.
    tls_verify_hostname: bool = False
    # Full connection string handed to the driver unchanged (mongodb only)
    uri: str = Field(default="", repr=False)

    @field_validator('port')
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate port range."""
        if v < 0 or v > 65535:
            raise ValueError('Port must be between 0 and 65535')
        return v

    @model_validator(mode="after")
    def validate_uri_driver(self) -> "TargetDescriptor":
        if self.uri and self.driver != "mongodb":
            raise ValueError(f"uri is only supported for mongodb targets, not {self.driver}")
        return self

    @property
    def effective_port(self) -> int:
        return self.port or DEFAULT_PORTS[self.driver]

    @property
    def identity(self) -> Tuple[str, int, str]:
        return (self.host, self.effective_port, self.name)

    @property
    def label(self) -> str:
        return f"{self.host}:{self.effective_port}/{self.name}"


class CheckerConfig(BaseModel):
    """One-shot readiness check settings."""
    tries: int = Field(default=10, ge=1)
    probe_timeout: float = Field(default=5.0, gt=0)


class ExporterConfig(BaseModel):
    """Background exporter settings."""
    enabled: bool = False
    port: int = Field(default=38080, ge=1, le=65535)
    check_interval: float = DEFAULT_CHECK_INTERVAL
    metrics_namespace: str = DEFAULT_METRICS_NAMESPACE

    @field_validator('check_interval')
    @classmethod
    def default_non_positive_interval(cls, v: float) -> float:
        """Replace a zero or negative interval with the default."""
        if v <= 0:
            return DEFAULT_CHECK_INTERVAL
        return v

    @field_validator('metrics_namespace')
    @classmethod
    def validate_metrics_namespace(cls, v: str) -> str:
        """Namespace must be a valid Prometheus metric name prefix."""
        if not METRIC_NAME_RE.match(v):
            raise ValueError(f"Invalid metrics namespace: {v!r}")
        return v


class CheckerSystemConfig(BaseModel):
    """Root configuration model."""
    targets: List[TargetDescriptor] = Field(default_factory=list)
    checker: CheckerConfig = Field(default_factory=CheckerConfig)
    exporter: ExporterConfig = Field(default_factory=ExporterConfig)
    log_level: str = "INFO"

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize and validate log level name."""
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level
