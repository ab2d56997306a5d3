"""Environment-backed settings for SiteAgent."""

from __future__ import annotations

import os
import shutil
from pathlib import Path

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field

DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_API_BASE = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_OUTPUT_DIR = "generated-site"
DEFAULT_MAX_TURNS = 50
DEFAULT_MODEL_TIMEOUT = 120.0  # seconds
DEFAULT_MAX_OUTPUT_BYTES = 10 * 1024  # 10KB


def default_shell() -> str:
    """Bash from PATH when available, otherwise POSIX sh."""
    return shutil.which("bash") or "/bin/sh"


class Settings(BaseModel):
    """Runtime settings shared by the server, the CLI and the agent loop."""

    api_key: str | None = None
    model: str = DEFAULT_MODEL
    api_base: str = DEFAULT_API_BASE
    output_dir: Path = Path(DEFAULT_OUTPUT_DIR)
    work_dir: Path = Field(default_factory=Path.cwd)
    shell_path: str = Field(default_factory=default_shell)
    max_turns: int = Field(default=DEFAULT_MAX_TURNS, ge=0)
    command_timeout: float | None = None
    model_timeout: float = DEFAULT_MODEL_TIMEOUT
    restrict_writes: bool = True
    max_output_bytes: int = Field(default=DEFAULT_MAX_OUTPUT_BYTES, gt=0)

    @property
    def output_root(self) -> Path:
        """Output directory resolved against the working directory."""
        if self.output_dir.is_absolute():
            return self.output_dir
        return self.work_dir / self.output_dir


def _to_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _to_float(value: str | None) -> float | None:
    if value is None or not value.strip():
        return None
    return float(value)


def load_settings(**overrides) -> Settings:
    """Build settings from the environment (and `.env`), then apply overrides."""
    load_dotenv(find_dotenv(usecwd=True))

    values: dict = {
        "api_key": os.getenv("GOOGLE_API_KEY") or None,
        "model": os.getenv("SITEAGENT_MODEL", DEFAULT_MODEL),
        "api_base": os.getenv("SITEAGENT_API_BASE", DEFAULT_API_BASE),
        "output_dir": Path(os.getenv("SITEAGENT_OUTPUT_DIR", DEFAULT_OUTPUT_DIR)),
        "restrict_writes": _to_bool(os.getenv("SITEAGENT_RESTRICT_WRITES"), True),
        "command_timeout": _to_float(os.getenv("SITEAGENT_COMMAND_TIMEOUT")),
    }

    if os.getenv("SITEAGENT_WORK_DIR"):
        values["work_dir"] = Path(os.environ["SITEAGENT_WORK_DIR"])
    if os.getenv("SITEAGENT_SHELL"):
        values["shell_path"] = os.environ["SITEAGENT_SHELL"]
    if os.getenv("SITEAGENT_MAX_TURNS"):
        values["max_turns"] = int(os.environ["SITEAGENT_MAX_TURNS"])
    if os.getenv("SITEAGENT_MODEL_TIMEOUT"):
        values["model_timeout"] = float(os.environ["SITEAGENT_MODEL_TIMEOUT"])
    if os.getenv("SITEAGENT_MAX_OUTPUT_BYTES"):
        values["max_output_bytes"] = int(os.environ["SITEAGENT_MAX_OUTPUT_BYTES"])

    values.update({k: v for k, v in overrides.items() if v is not None})
    return Settings(**values)
