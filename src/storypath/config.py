"""Engine configuration loading."""

from __future__ import annotations

import math
import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path  # noqa: TC003 - used at runtime
from typing import Any

from ruamel.yaml import YAML

# Default configuration values
DEFAULT_STARTING_SCENE = "scene1"
DEFAULT_INIT_DELAY = 0.5
DEFAULT_TRANSITION_DELAY = 0.3
DEFAULT_CONFIG_FILENAME = "storypath.yaml"

ENV_STARTING_SCENE = "STORYPATH_STARTING_SCENE"
ENV_INIT_DELAY = "STORYPATH_INIT_DELAY"
ENV_TRANSITION_DELAY = "STORYPATH_TRANSITION_DELAY"


class ConfigError(Exception):
    """Raised when configuration cannot be loaded."""

    def __init__(self, path: Path | str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to load config at {path}: {reason}")


def _parse_delay(value: Any, source: Path | str, key: str) -> float:
    try:
        delay = float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(source, f"{key} must be a number, got {value!r}") from e
    if not math.isfinite(delay):
        raise ConfigError(source, f"{key} must be a finite number, got {value!r}")
    if delay < 0:
        raise ConfigError(source, f"{key} must not be negative, got {delay}")
    return delay


@dataclass(frozen=True)
class EngineSettings:
    """Settings for a navigation engine.

    Resolution order (highest first): explicit overrides (CLI flags),
    environment variables, config file, defaults.

    Attributes:
        starting_scene_id: Scene a session starts from.
        init_delay: Seconds spent in VALIDATING before the first scene shows.
        transition_delay: Seconds spent in TRANSITIONING after each choice.
    """

    starting_scene_id: str = DEFAULT_STARTING_SCENE
    init_delay: float = DEFAULT_INIT_DELAY
    transition_delay: float = DEFAULT_TRANSITION_DELAY

    @classmethod
    def from_dict(cls, data: dict[str, Any], *, source: Path | str = "<dict>") -> EngineSettings:
        """Create settings from a dictionary.

        Args:
            data: Dictionary with optional ``starting_scene``, ``init_delay``
                and ``transition_delay`` keys. An ``engine`` sub-mapping is
                used instead when present.
            source: Where the data came from, for error messages.

        Returns:
            EngineSettings instance.

        Raises:
            ConfigError: If a delay is not a non-negative number,
                or the ``engine`` section is not a mapping.
        """
        engine_data = data.get("engine", data)
        if not isinstance(engine_data, Mapping):
            raise ConfigError(source, f"engine must be a mapping, got {engine_data!r}")
        return cls(
            starting_scene_id=str(engine_data.get("starting_scene", DEFAULT_STARTING_SCENE)),
            init_delay=_parse_delay(
                engine_data.get("init_delay", DEFAULT_INIT_DELAY), source, "init_delay"
            ),
            transition_delay=_parse_delay(
                engine_data.get("transition_delay", DEFAULT_TRANSITION_DELAY),
                source,
                "transition_delay",
            ),
        )

    def with_env_overrides(self) -> EngineSettings:
        """Apply STORYPATH_* environment variables on top of these settings."""
        updates: dict[str, Any] = {}
        if starting := os.getenv(ENV_STARTING_SCENE):
            updates["starting_scene_id"] = starting
        if init_delay := os.getenv(ENV_INIT_DELAY):
            updates["init_delay"] = _parse_delay(init_delay, ENV_INIT_DELAY, "init_delay")
        if transition_delay := os.getenv(ENV_TRANSITION_DELAY):
            updates["transition_delay"] = _parse_delay(
                transition_delay, ENV_TRANSITION_DELAY, "transition_delay"
            )
        return replace(self, **updates) if updates else self

    def without_pacing(self) -> EngineSettings:
        """Copy of these settings with both delays set to zero."""
        return replace(self, init_delay=0.0, transition_delay=0.0)


def load_settings(config_path: Path | None = None, *, use_env: bool = True) -> EngineSettings:
    """Load engine settings from a YAML file.

    Args:
        config_path: Path to a ``storypath.yaml`` file. If None, or if the
            file does not exist, defaults are used.
        use_env: Apply environment variable overrides.

    Returns:
        EngineSettings instance.

    Raises:
        ConfigError: If the file exists but cannot be parsed.
    """
    settings = EngineSettings()

    if config_path is not None and config_path.exists():
        yaml = YAML()
        try:
            with config_path.open("r", encoding="utf-8") as f:
                data = yaml.load(f)
        except Exception as e:
            raise ConfigError(config_path, str(e)) from e

        if data is not None:
            if not hasattr(data, "get"):
                raise ConfigError(config_path, "Top level must be a mapping")
            settings = EngineSettings.from_dict(dict(data), source=config_path)

    if use_env:
        settings = settings.with_env_overrides()
    return settings
