"""
Runtime configuration for the peerlink relay.

Values come from environment variables (a project-level ``.env`` is loaded
by the server entry point). ``CONFIG`` is the process-wide instance.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

PROJECT_DIR = Path(__file__).resolve().parent.parent.parent

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8080
DEFAULT_PROBE_INTERVAL = 30.0


def _env_int(name: str, default: int, fallback: str | None = None) -> int:
    raw = os.getenv(name)
    if raw is None and fallback:
        raw = os.getenv(fallback)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{name} must be greater than 0, got {value}")
    return value


@dataclass
class Config:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    probe_interval: float = DEFAULT_PROBE_INTERVAL
    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"
    log_file: str | None = None
    server_url: str | None = None

    @classmethod
    def from_env(cls) -> "Config":
        """Build a Config from the current environment."""
        origins = os.getenv("PEERLINK_CORS_ORIGINS", "*")
        return cls(
            host=os.getenv("PEERLINK_HOST", DEFAULT_HOST),
            port=_env_int("PEERLINK_PORT", DEFAULT_PORT, fallback="PORT"),
            probe_interval=_env_float(
                "PEERLINK_PROBE_INTERVAL", DEFAULT_PROBE_INTERVAL
            ),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()] or ["*"],
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_file=os.getenv("LOG_FILE") or None,
            server_url=os.getenv("PEERLINK_SERVER_URL") or None,
        )

    def reload(self) -> None:
        """Re-read the environment into this instance."""
        fresh = Config.from_env()
        for name in self.__dataclass_fields__:
            setattr(self, name, getattr(fresh, name))

    @property
    def base_url(self) -> str:
        """HTTP base URL clients use to reach the relay."""
        if self.server_url:
            return self.server_url.rstrip("/")
        host = "localhost" if self.host in ("0.0.0.0", "::") else self.host
        return f"http://{host}:{self.port}"


CONFIG = Config.from_env()
