"""
Engine configuration parameters for Gavel.

Defines operational limits and logging settings. Values come from, in
increasing priority: dataclass defaults, a JSON config file, and
``GAVEL_*`` environment variables (a ``.env`` file is loaded first).
"""

import json
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

ENV_PREFIX = "GAVEL_"


@dataclass
class EngineConfig:
    """Engine-wide configuration parameters"""

    # Admission
    max_bidders: int = 10_000  # Distinct identities allowed to bid

    # Display
    currency_symbol: str = "wei"

    # Logging
    log_level: str = "INFO"
    log_dir: Path = Path("logs")
    log_to_file: bool = False


class ConfigFile(BaseModel):
    """Schema of a JSON config file; every key is optional."""

    model_config = ConfigDict(extra="forbid")

    max_bidders: Optional[int] = Field(default=None, ge=1)
    currency_symbol: Optional[str] = Field(default=None, min_length=1)
    log_level: Optional[str] = Field(
        default=None, pattern=r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$"
    )
    log_dir: Optional[Path] = None
    log_to_file: Optional[bool] = None


def _env_overrides() -> dict:
    """Collect GAVEL_* variables as raw config values."""
    overrides = {}
    for name in ConfigFile.model_fields:
        value = os.environ.get(ENV_PREFIX + name.upper())
        if value is not None:
            overrides[name] = value
    return overrides


def load_config(config_path: Optional[str] = None, env_file: Optional[str] = None) -> EngineConfig:
    """
    Load configuration from file and environment, falling back to defaults.

    Args:
        config_path: Optional path to a JSON config file
        env_file: Optional .env file (defaults to ./.env when present)

    Returns:
        EngineConfig instance

    Raises:
        pydantic.ValidationError: if a value is out of range or unknown
        FileNotFoundError: if ``config_path`` does not exist
    """
    load_dotenv(dotenv_path=env_file)

    raw = {}
    if config_path:
        raw.update(json.loads(Path(config_path).read_text()))
    raw.update(_env_overrides())

    parsed = ConfigFile.model_validate(raw)

    values = asdict(EngineConfig())
    values.update(parsed.model_dump(exclude_none=True))
    return EngineConfig(**values)


__all__ = [
    "EngineConfig",
    "ConfigFile",
    "load_config",
    "ENV_PREFIX",
]
