"""
Desired-state specifications handed to the Docker clients.

Durations use Docker's notation (``"30s"``, ``"1m30s"``, ``"500ms"``).
"""

from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from .durations import parse_duration
from .errors import ConfigurationError


class IPAMPoolSpec(BaseModel):
    subnet: str | None = None
    ip_range: str | None = None
    gateway: str | None = None
    aux_address: dict[str, str] = Field(default_factory=dict)


class NetworkSpec(BaseModel):
    """A Docker network to create."""

    name: str
    driver: str = "bridge"
    options: dict[str, str] = Field(default_factory=dict)
    labels: dict[str, str] = Field(default_factory=dict)
    internal: bool = False
    attachable: bool = False
    ingress: bool = False
    ipv6: bool = False
    check_duplicate: bool = True
    ipam_driver: str = "default"
    ipam_config: list[IPAMPoolSpec] = Field(default_factory=list)


class VolumeSpec(BaseModel):
    """A Docker volume to create."""

    name: str
    driver: str = "local"
    driver_opts: dict[str, str] = Field(default_factory=dict)
    labels: dict[str, str] = Field(default_factory=dict)


class PortSpec(BaseModel):
    target_port: int
    published_port: int | None = None
    protocol: Literal["tcp", "udp", "sctp"] = "tcp"
    publish_mode: Literal["ingress", "host"] = "ingress"


class RestartPolicySpec(BaseModel):
    condition: Literal["none", "on-failure", "any"] = "any"
    delay: str | None = None
    max_attempts: int = 0
    window: str | None = None


class ConvergeConfig(BaseModel):
    """How long to wait for a service to converge after create or update."""

    delay: str = "7s"
    timeout: str = "3m"

    @field_validator("delay", "timeout")
    @classmethod
    def _valid_duration(cls, value: str) -> str:
        parse_duration(value)
        return value

    @model_validator(mode="after")
    def _delay_before_timeout(self) -> "ConvergeConfig":
        if self.timeout_seconds <= 0:
            raise ConfigurationError(f"converge timeout must be positive, got {self.timeout!r}")
        if self.delay_seconds >= self.timeout_seconds:
            raise ConfigurationError(
                f"converge delay {self.delay!r} must be shorter than timeout {self.timeout!r}"
            )
        return self

    @property
    def delay_seconds(self) -> float:
        return parse_duration(self.delay)

    @property
    def timeout_seconds(self) -> float:
        return parse_duration(self.timeout)


class ServiceSpec(BaseModel):
    """A swarm service to create or update.

    Only the replicated/global mode, one container spec, networks and
    published ports are modelled; anything else keeps the daemon defaults.
    """

    name: str
    image: str
    command: list[str] | None = None
    args: list[str] | None = None
    env: dict[str, str] = Field(default_factory=dict)
    labels: dict[str, str] = Field(default_factory=dict)
    container_labels: dict[str, str] = Field(default_factory=dict)
    mode: Literal["replicated", "global"] = "replicated"
    replicas: int = 1
    networks: list[str] = Field(default_factory=list)
    ports: list[PortSpec] = Field(default_factory=list)
    endpoint_mode: Literal["vip", "dnsrr"] | None = None
    stop_grace_period: str | None = None
    restart_policy: RestartPolicySpec | None = None
    converge_config: ConvergeConfig | None = None

    @field_validator("stop_grace_period")
    @classmethod
    def _valid_grace_period(cls, value: str | None) -> str | None:
        if value is not None:
            parse_duration(value)
        return value

    @field_validator("replicas")
    @classmethod
    def _non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("replicas must not be negative")
        return value
