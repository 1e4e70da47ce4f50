"""Configuration and logging for the Jifty REST client."""

import logging
import os
import pathlib

import pydantic
import structlog
import yaml

from .jiftyapi import DEFAULT_TIMEOUT

CONFIG_ENV_VAR = "JIFTY_CLIENT_CONFIG_PATH"
DEFAULT_CONFIG_PATH = "~/.jifty_client.yml"

logger = structlog.get_logger(__name__)


class ClientConfig(pydantic.BaseModel):
    """Configuration for a Jifty REST client.

    Only the fields declared here are read from a config file; any other
    key is ignored.
    """

    model_config = pydantic.ConfigDict(extra="ignore")

    site: str = pydantic.Field(description="URL of the Jifty application")
    cookie_name: str = pydantic.Field(description="Name of the session ID cookie")
    appname: str = pydantic.Field(description="Application name as known to Jifty")
    email: str | None = pydantic.Field(None, description="Email address to log in with")
    password: str | None = pydantic.Field(None, description="Password to log in with")
    sid: str | None = pydantic.Field(None, description="Session ID from a previous login")
    timeout: float = pydantic.Field(
        DEFAULT_TIMEOUT,
        description="Request timeout in seconds",
        gt=0,
    )
    log_level: str = pydantic.Field("INFO", description="Logging level")


def configure_logging(log_level_name: str) -> None:
    """Configure structlog for logfmt output."""
    log_level = getattr(logging, log_level_name.upper(), logging.INFO)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.EventRenamer("msg"),
            structlog.processors.format_exc_info,
            structlog.processors.LogfmtRenderer(
                key_order=("timestamp", "level", "msg"),
            ),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def resolve_config_path(config_path: str | os.PathLike | None = None) -> pathlib.Path:
    """Return the config path to use, falling back to the environment default."""
    resolved = config_path or os.environ.get(CONFIG_ENV_VAR, DEFAULT_CONFIG_PATH)
    return pathlib.Path(resolved).expanduser()


def load_config(config_path: str | os.PathLike) -> ClientConfig:
    """Load configuration from a YAML file."""
    path = pathlib.Path(config_path)
    if not path.exists():
        msg = f"Configuration file not found: {config_path}"
        raise FileNotFoundError(msg)

    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        msg = f"Configuration file must contain a mapping: {config_path}"
        raise ValueError(msg)

    return ClientConfig(**data)


def save_config(config: ClientConfig, config_path: str | os.PathLike) -> None:
    """Write configuration to a YAML file readable only by its owner.

    The file holds the password and session ID, so its mode is narrowed
    to 0600 before anything is written.
    """
    path = pathlib.Path(config_path)
    path.touch(mode=0o600, exist_ok=True)
    path.chmod(0o600)

    data = config.model_dump(exclude_none=True)
    with path.open("w", encoding="utf-8") as f:
        yaml.safe_dump(data, f, default_flow_style=False, sort_keys=True)

    logger.debug("Saved configuration", path=str(path))
