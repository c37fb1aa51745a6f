"""
Configuration Management for graphsession

Connection parameters are validated with pydantic so that every offending
field is reported at once. Values can also be read from the environment
(optionally through a ``.env`` file).
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Annotated, Any, Dict, List, Mapping, Optional, Tuple, Union

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .exceptions import ConfigurationError, safe_uri

RequiredText = Annotated[str, Field(strict=True, min_length=1)]

# Driver keyword arguments that may be tuned per connection.
DRIVER_SETTINGS = (
    "max_connection_pool_size",
    "connection_timeout",
    "max_transaction_retry_time",
)


class ConnectionParams(BaseModel):
    """Parameters accepted when opening a named connection."""

    alias: RequiredText
    uri: RequiredText
    database: RequiredText
    user: RequiredText
    password: Annotated[str, Field(strict=True, min_length=1, repr=False)]

    # Opt-out policies: only an explicit False disables them.
    retry_deadlock: bool = True
    scrub_results: bool = True

    max_connection_pool_size: Optional[Annotated[int, Field(ge=1)]] = None
    connection_timeout: Optional[Annotated[float, Field(gt=0.0)]] = None
    max_transaction_retry_time: Optional[Annotated[float, Field(ge=0.0)]] = None

    model_config = ConfigDict(extra="ignore", frozen=True)

    @field_validator("retry_deadlock", "scrub_results", mode="before")
    @classmethod
    def opt_out_flag(cls, v: Any) -> bool:
        return v is not False

    @classmethod
    def validate_params(
        cls, params: Union["ConnectionParams", Mapping[str, Any], None]
    ) -> Tuple[Optional["ConnectionParams"], List[str]]:
        """
        Validate raw parameters without raising.

        Returns:
            ``(params, [])`` on success, ``(None, messages)`` otherwise, with one
            ``"invalid param: <field>"`` message per offending field in
            declaration order.
        """
        if isinstance(params, cls):
            return params, []
        data = dict(params) if isinstance(params, Mapping) else {}
        try:
            return cls.model_validate(data), []
        except ValidationError as e:
            invalid = {str(err["loc"][0]) for err in e.errors() if err["loc"]}
            return None, [
                f"invalid param: {name}" for name in cls.model_fields if name in invalid
            ]

    def driver_options(self) -> Dict[str, Any]:
        """Driver keyword arguments explicitly set on these parameters."""
        options = {}
        for name in DRIVER_SETTINGS:
            value = getattr(self, name)
            if value is not None:
                options[name] = value
        return options

    def get_connection_string(self) -> str:
        """Get formatted connection string for logging (without password)."""
        return f"{safe_uri(self.uri)}/{self.database} (user: {self.user})"

    @classmethod
    def from_environment(
        cls, alias: str, prefix: str = "NEO4J_"
    ) -> "ConnectionParams":
        """
        Build connection parameters from environment variables.

        Reads ``<prefix>URI``, ``<prefix>DATABASE`` (default ``neo4j``),
        ``<prefix>USER`` (default ``neo4j``), ``<prefix>PASSWORD``,
        ``<prefix>RETRY_DEADLOCK``, ``<prefix>SCRUB_RESULTS`` and the driver
        settings (``<prefix>MAX_CONNECTION_POOL_SIZE``, ...). A ``.env`` file in
        the working directory is loaded first without overriding the process
        environment.

        Raises:
            ConfigurationError: If the resulting parameters are invalid
        """
        load_dotenv(override=False)

        def env(name: str, default: Optional[str] = None) -> Optional[str]:
            return os.getenv(f"{prefix}{name}", default)

        data: Dict[str, Any] = {
            "alias": alias,
            "uri": env("URI"),
            "database": env("DATABASE", "neo4j"),
            "user": env("USER", "neo4j"),
            "password": env("PASSWORD"),
            "retry_deadlock": (env("RETRY_DEADLOCK", "true") or "").strip().lower()
            != "false",
            "scrub_results": (env("SCRUB_RESULTS", "true") or "").strip().lower()
            != "false",
        }
        for name in DRIVER_SETTINGS:
            value = env(name.upper())
            if value:
                data[name] = value

        params, messages = cls.validate_params(data)
        if params is None:
            raise ConfigurationError(
                f"Invalid connection configuration for '{alias}' "
                f"(environment prefix {prefix})",
                invalid_fields=[m.split(": ", 1)[-1] for m in messages],
                recovery_suggestion=f"Set {prefix}URI and {prefix}PASSWORD",
            )
        return params


@dataclass
class LoggingConfig:
    """Configuration for logging behavior."""

    level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    def __post_init__(self) -> None:
        """Validate logging configuration."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.level.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        self.level = self.level.upper()

    def get_log_level(self) -> int:
        """Convert string log level to logging constant."""
        level_attr = getattr(logging, self.level, None)
        if level_attr is None:
            raise ValueError(f"Invalid log level: {self.level}")
        return int(level_attr)
