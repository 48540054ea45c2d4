"""
YAML configuration loading.

A run is configured by ``config.yaml`` plus an optional overlay named after
an environment, e.g. ``config.fast.yaml`` for ``env="fast"``. The overlay is
deep-merged over the base, ``${VAR:default}`` references are expanded, and
the result is validated into an AppConfig.
"""

from copy import deepcopy
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from ..core.logger import get_logger
from .exceptions import ConfigFileNotFoundError, ConfigParseError, ConfigValidationError
from .models import AppConfig
from .models.base import expand_env

logger = get_logger(__name__)


class ConfigLoader:
    """
    Loads AppConfig from YAML.

    Variables referenced by the YAML may come from the process environment
    or from a dotenv file. An explicit ``env_file`` wins; otherwise the first
    ``.env`` found beside the config, one level up, or in the working
    directory is used. Existing environment variables are never overwritten.

    Example:
        >>> config = ConfigLoader().load("config/config.yaml", env="fast")
        >>> config.simulation.horizon_days
        2
    """

    def __init__(self, env_file: Optional[str | Path] = None):
        self._env_file = Path(env_file) if env_file else None
        self._dotenv_done = False

    def load(self, path: str | Path, env: Optional[str] = None) -> AppConfig:
        """
        Read, merge, expand and validate a configuration file.

        Raises:
            ConfigFileNotFoundError: The base file does not exist
            ConfigParseError: A file is not valid YAML or not a mapping
            ConfigValidationError: The merged data does not fit AppConfig
        """
        path = Path(path)
        self._read_dotenv(path.parent)

        data = self.load_yaml(path)
        if env:
            overlay = path.with_name(f"{path.stem}.{env}{path.suffix}")
            if overlay.exists():
                logger.debug(f"Applying config overlay {overlay}")
                data = self.merge_configs(data, self.load_yaml(overlay))
            else:
                logger.debug(f"No overlay for env '{env}' at {overlay}")

        return self.validate(expand_env(data))

    def load_yaml(self, path: str | Path) -> dict[str, Any]:
        """Parse one YAML file. An empty file yields an empty mapping."""
        path = Path(path)
        if not path.is_file():
            raise ConfigFileNotFoundError(str(path))

        try:
            document = yaml.safe_load(path.read_text(encoding="utf-8"))
        except yaml.YAMLError as e:
            raise ConfigParseError(str(path), str(e)) from e

        if document is None:
            return {}
        if not isinstance(document, dict):
            raise ConfigParseError(str(path), "top-level YAML node must be a mapping")
        return document

    def merge_configs(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """
        Deep-merge ``override`` into a copy of ``base``.

        Nested mappings merge key by key; any other value in ``override``
        replaces the base value outright (lists are not concatenated).
        """
        merged = deepcopy(base)
        for key, value in override.items():
            current = merged.get(key)
            if isinstance(current, dict) and isinstance(value, dict):
                merged[key] = self.merge_configs(current, value)
            else:
                merged[key] = deepcopy(value)
        return merged

    def validate(self, data: dict[str, Any]) -> AppConfig:
        """Build an AppConfig, flattening pydantic errors to ``field.path: message``."""
        try:
            return AppConfig(**data)
        except ValidationError as e:
            problems = [
                ".".join(str(part) for part in err["loc"]) + f": {err['msg']}"
                for err in e.errors()
            ]
            raise ConfigValidationError(problems) from e
        except TypeError as e:
            raise ConfigValidationError([str(e)]) from e

    def _read_dotenv(self, config_dir: Path) -> None:
        if self._dotenv_done:
            return
        self._dotenv_done = True

        if self._env_file is not None:
            candidates = [self._env_file]
        else:
            candidates = [config_dir / ".env", config_dir.parent / ".env", Path.cwd() / ".env"]

        for candidate in candidates:
            if candidate.is_file():
                logger.debug(f"Loading environment from {candidate}")
                load_dotenv(candidate)
                return


def load_config(
    path: str | Path,
    env: Optional[str] = None,
    env_file: Optional[str | Path] = None,
) -> AppConfig:
    """Shortcut for ``ConfigLoader(env_file).load(path, env)``."""
    return ConfigLoader(env_file=env_file).load(path, env=env)
