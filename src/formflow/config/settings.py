"""Engine settings schema and loader.

Settings are loaded from a YAML file, given explicitly or through the
``FORMFLOW_CONFIG`` environment variable, then individual values can be
overridden with ``FORMFLOW_*`` environment variables. A ``.env`` file in
the working directory is honoured.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from formflow.exceptions import ConfigError
from formflow.schemas.form import LayoutWidth

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "FORMFLOW_CONFIG"
ENV_PREFIX = "FORMFLOW_"


class EngineSettings(BaseModel):
    """Tunable behaviour of the form engine.

    Attributes:
        max_logic_iterations: Minimum fixed-point iteration cap for
            conditional rules (grows with the rule count).
        history_limit: Maximum undo snapshots kept by the authoring store.
        average_excludes_missing: When true, ``average`` scores divide by
            the number of answered sources instead of all sources.
        default_layout_width: Layout width given to newly added fields.
    """

    max_logic_iterations: int = Field(default=10, ge=1)
    history_limit: int = Field(default=50, ge=2)
    average_excludes_missing: bool = Field(default=False)
    default_layout_width: LayoutWidth = Field(default=LayoutWidth.FULL)

    model_config = {"extra": "forbid"}

    @classmethod
    def from_env(cls, base: Optional[Dict[str, Any]] = None, prefix: str = ENV_PREFIX) -> "EngineSettings":
        """Create settings from environment variables layered over ``base``.

        Environment variables:
            {prefix}MAX_LOGIC_ITERATIONS
            {prefix}HISTORY_LIMIT
            {prefix}AVERAGE_EXCLUDES_MISSING
            {prefix}DEFAULT_LAYOUT_WIDTH

        Args:
            base: Values loaded from a config file, if any
            prefix: Environment variable prefix (default: FORMFLOW_)

        Returns:
            EngineSettings with environment overrides applied
        """
        kwargs: Dict[str, Any] = dict(base or {})

        for name in cls.model_fields:
            raw = os.getenv(f"{prefix}{name.upper()}")
            if raw is None or raw == "":
                continue
            if name == "average_excludes_missing":
                kwargs[name] = raw.strip().lower() in ("1", "true", "yes", "on")
            else:
                kwargs[name] = raw.strip()

        return cls(**kwargs)


def load_settings(config_path: Optional[Path] = None) -> EngineSettings:
    """Load engine settings.

    Args:
        config_path: Optional explicit path to a YAML settings file.
            Falls back to ``$FORMFLOW_CONFIG``; without either, defaults
            plus environment overrides are used.

    Returns:
        EngineSettings

    Raises:
        ConfigError: If the file is missing, unreadable or invalid.
    """
    load_dotenv()

    if config_path is None and os.getenv(CONFIG_ENV_VAR):
        config_path = Path(os.environ[CONFIG_ENV_VAR])

    data: Dict[str, Any] = {}
    if config_path is not None:
        config_path = Path(config_path)
        if not config_path.exists():
            raise ConfigError(f"Settings file not found: {config_path}")
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

        if loaded is None:
            logger.warning(f"Empty settings file at {config_path}")
        elif not isinstance(loaded, dict):
            raise ConfigError(f"Settings file {config_path} must contain a mapping")
        else:
            data = loaded

    try:
        settings = EngineSettings.from_env(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid engine settings: {e}") from e

    logger.debug(f"Loaded engine settings: {settings.model_dump()}")
    return settings
