"""Settings for review sessions, loaded from ``.review-threads.yml``."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

DEFAULT_CONFIG_NAME = ".review-threads.yml"


class ReviewSettings(BaseModel):
    """Tunable behaviour of sessions and the watcher."""

    similarity_threshold: float = Field(
        default=0.6, ge=0.0, le=1.0, description="Minimum similarity to re-match an edited added line"
    )
    lock_timeout: float = Field(default=5.0, gt=0, description="Seconds to wait for a file's lock")
    watch_debounce: float = Field(default=0.3, ge=0, description="Seconds of quiet before a change is delivered")
    encoding: str = "utf-8"
    verbose: bool = False


def load_settings(config_path: Path | None = None, overrides: dict[str, Any] | None = None) -> ReviewSettings:
    """Load settings by merging, in order of precedence:

    1. Built-in defaults
    2. The YAML file (``.review-threads.yml`` in the current directory by default)
    3. Explicit overrides; None values are ignored

    Raises:
        ValueError: If the file is not a YAML mapping
        pydantic.ValidationError: If a value is out of range
    """
    path = config_path if config_path is not None else Path(DEFAULT_CONFIG_NAME)
    values: dict[str, Any] = {}

    if path.exists():
        try:
            loaded = yaml.safe_load(path.read_text(encoding="utf-8"))
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {path}: {e}") from e
        if loaded is not None and not isinstance(loaded, dict):
            raise ValueError(f"Expected a mapping in {path}, got {type(loaded).__name__}")
        values.update(loaded or {})

    if overrides:
        values.update({k: v for k, v in overrides.items() if v is not None})

    return ReviewSettings(**values)
