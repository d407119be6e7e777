"""
Configuration Loader.

Loads a base YAML file, deep-merges an optional per-environment overlay
(``index_fund.production.yaml`` next to ``index_fund.yaml``), substitutes
environment variables and validates the result as an AppConfig.
"""

import os
import re
from copy import deepcopy
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError as PydanticValidationError

from .exceptions import (
    ConfigFileNotFoundError,
    ConfigParseError,
    ConfigValidationError,
)
from .models import AppConfig

ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::([^}]*))?\}")

_TRUE_VALUES = ("true", "yes", "on")
_FALSE_VALUES = ("false", "no", "off")


class ConfigLoader:
    """
    YAML configuration loader.

    Example:
        >>> loader = ConfigLoader()
        >>> config = loader.load("config/index_fund.yaml", env="production")
        >>> config.engine.max_slippage_bps
        300
    """

    def __init__(self, env_file: Optional[str | Path] = None):
        """
        Initialize ConfigLoader.

        Args:
            env_file: Optional path to a .env file. When omitted, .env is
                     searched next to the config file, its parent and the cwd.
        """
        self._env_file = Path(env_file) if env_file else None
        self._loaded_env = False

    def load(self, path: str | Path, env: Optional[str] = None) -> AppConfig:
        """
        Load configuration with an optional environment overlay.

        Args:
            path: Path to base configuration file
            env: Optional environment name selecting ``<stem>.<env>.yaml``

        Returns:
            Validated AppConfig instance

        Raises:
            ConfigFileNotFoundError: If base config file not found
            ConfigParseError: If YAML parsing fails
            ConfigValidationError: If model validation fails
        """
        path = Path(path)
        self._load_env_file(path.parent)

        data = self.load_yaml(path)

        if env:
            overlay_path = path.parent / f"{path.stem}.{env}{path.suffix}"
            if overlay_path.exists():
                data = self.merge_configs(data, self.load_yaml(overlay_path))

        data = self.substitute_env_vars(data)

        try:
            return AppConfig(**data)
        except PydanticValidationError as e:
            errors = [
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                for err in e.errors()
            ]
            raise ConfigValidationError(errors) from e

    def load_yaml(self, path: str | Path) -> dict[str, Any]:
        """
        Read a YAML mapping from disk.

        Raises:
            ConfigFileNotFoundError: If file not found
            ConfigParseError: If the content is not a YAML mapping
        """
        path = Path(path)

        if not path.exists():
            raise ConfigFileNotFoundError(str(path))

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigParseError(str(path), str(e)) from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigParseError(str(path), "top-level value must be a mapping")
        return data

    def merge_configs(
        self,
        base: dict[str, Any],
        override: dict[str, Any],
    ) -> dict[str, Any]:
        """
        Deep merge two configuration dictionaries.

        Example:
            >>> loader.merge_configs({"engine": {"a": 1, "b": 2}}, {"engine": {"a": 10}})
            {'engine': {'a': 10, 'b': 2}}
        """
        result = deepcopy(base)

        for key, value in override.items():
            if isinstance(result.get(key), dict) and isinstance(value, dict):
                result[key] = self.merge_configs(result[key], value)
            else:
                result[key] = deepcopy(value)

        return result

    def substitute_env_vars(self, data: Any) -> Any:
        """Substitute ${VAR} and ${VAR:default} references recursively."""
        if isinstance(data, dict):
            return {k: self.substitute_env_vars(v) for k, v in data.items()}
        elif isinstance(data, list):
            return [self.substitute_env_vars(item) for item in data]
        elif isinstance(data, str):
            return self._substitute_string(data)
        return data

    def _substitute_string(self, value: str) -> Any:
        # A value that is exactly one reference is converted to bool/int/float
        full_match = ENV_VAR_PATTERN.fullmatch(value)
        if full_match:
            var_name, default = full_match.groups()
            env_value = os.environ.get(var_name, default)
            if env_value is None:
                return value
            return self._convert_value(env_value)

        def replace_match(match: re.Match) -> str:
            var_name, default = match.groups()
            return os.environ.get(var_name, default if default is not None else match.group(0))

        return ENV_VAR_PATTERN.sub(replace_match, value)

    def _convert_value(self, value: str) -> Any:
        """Convert a substituted string to bool, int or float when it looks like one."""
        lowered = value.lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False

        try:
            return int(value)
        except ValueError:
            pass

        try:
            return float(value)
        except ValueError:
            return value

    def _load_env_file(self, config_dir: Path) -> None:
        """Load the first .env found, once per loader."""
        if self._loaded_env:
            return

        candidates = [
            self._env_file,
            config_dir / ".env",
            config_dir.parent / ".env",
            Path.cwd() / ".env",
        ]
        for candidate in candidates:
            if candidate is not None and candidate.exists():
                load_dotenv(candidate)
                self._loaded_env = True
                return


def load_config(
    path: str | Path,
    env: Optional[str] = None,
    env_file: Optional[str | Path] = None,
) -> AppConfig:
    """
    Load configuration from YAML file.

    Args:
        path: Path to base configuration file
        env: Optional environment name
        env_file: Optional path to .env file

    Returns:
        Validated AppConfig instance
    """
    loader = ConfigLoader(env_file=env_file)
    return loader.load(path, env=env)
