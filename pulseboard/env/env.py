from __future__ import annotations

from typing import Callable, ClassVar, Dict, Union

from pydantic import (
    BaseModel,
    Field,
    StrictFloat,
    StrictInt,
    StrictStr,
    model_validator,
)

from .time_parser import TimeParser

PrimaryType = Union[str, int, float, bytes, bool]


class Env(BaseModel):
    PULSEBOARD_HOST: StrictStr = "127.0.0.1"
    PULSEBOARD_PORT: StrictInt = Field(default=9838, ge=0, le=65535)
    PULSEBOARD_LOG_LEVEL: StrictStr = "info"
    PULSEBOARD_LOGS_DIRECTORY: StrictStr | None = None

    @classmethod
    def types_map(cls) -> Dict[str, Callable[[str], PrimaryType]]:
        return {
            "PULSEBOARD_HOST": str,
            "PULSEBOARD_PORT": int,
            "PULSEBOARD_LOG_LEVEL": str,
            "PULSEBOARD_LOGS_DIRECTORY": str,
        }

    @property
    def host(self) -> str:
        return self.PULSEBOARD_HOST

    @property
    def port(self) -> int:
        return self.PULSEBOARD_PORT


class AgentEnv(Env):
    PULSEBOARD_REFRESH_INTERVAL: StrictStr | StrictInt | StrictFloat = "1s"
    PULSEBOARD_BLOCKED_THRESHOLD: StrictInt | StrictFloat = Field(default=10, ge=0)

    @model_validator(mode="after")
    def validate_refresh_interval(self) -> AgentEnv:
        if TimeParser(self.PULSEBOARD_REFRESH_INTERVAL).time <= 0:
            raise ValueError(
                f"Err. - refresh interval must be positive, got {self.PULSEBOARD_REFRESH_INTERVAL!r}"
            )

        return self

    @classmethod
    def types_map(cls) -> Dict[str, Callable[[str], PrimaryType]]:
        envars = super().types_map()
        envars.update(
            {
                "PULSEBOARD_REFRESH_INTERVAL": str,
                "PULSEBOARD_BLOCKED_THRESHOLD": float,
            }
        )

        return envars

    @property
    def refresh_interval(self) -> float:
        return TimeParser(self.PULSEBOARD_REFRESH_INTERVAL).time

    @property
    def blocked_threshold(self) -> int | float:
        return self.PULSEBOARD_BLOCKED_THRESHOLD


class ViewerEnv(Env):
    PULSEBOARD_WINDOW_SIZE: StrictInt = Field(default=150, ge=1)
    PULSEBOARD_RETRY_INTERVAL: StrictStr | StrictInt | StrictFloat = "1s"

    @model_validator(mode="after")
    def validate_retry_interval(self) -> ViewerEnv:
        if TimeParser(self.PULSEBOARD_RETRY_INTERVAL).time <= 0:
            raise ValueError(
                f"Err. - retry interval must be positive, got {self.PULSEBOARD_RETRY_INTERVAL!r}"
            )

        return self

    @classmethod
    def types_map(cls) -> Dict[str, Callable[[str], PrimaryType]]:
        envars = super().types_map()
        envars.update(
            {
                "PULSEBOARD_WINDOW_SIZE": int,
                "PULSEBOARD_RETRY_INTERVAL": str,
            }
        )

        return envars

    @property
    def window_size(self) -> int:
        return self.PULSEBOARD_WINDOW_SIZE

    @property
    def retry_interval(self) -> float:
        return TimeParser(self.PULSEBOARD_RETRY_INTERVAL).time


class EnvOverride(BaseModel):
    """
    Explicit options passed to a constructor. Only fields that were
    actually given (not None) take part in resolution, so each field
    falls through to the environment and then the default independently.
    """

    env_prefix: ClassVar[str] = "PULSEBOARD_"

    host: StrictStr | None = None
    port: StrictInt | None = None
    log_level: StrictStr | None = None

    def as_env(self) -> Dict[str, PrimaryType]:
        return {
            f"{self.env_prefix}{name.upper()}": value
            for name, value in self.model_dump(exclude_none=True).items()
        }


class AgentOptions(EnvOverride):
    refresh_interval: StrictStr | StrictInt | StrictFloat | None = None
    blocked_threshold: StrictInt | StrictFloat | None = None


class ViewerOptions(EnvOverride):
    window_size: StrictInt | None = None
    retry_interval: StrictStr | StrictInt | StrictFloat | None = None
