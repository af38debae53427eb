"""Configuration resolver with layered priority.

Priority (highest to lowest):
1. CLI arguments (passed in by the embedding application)
2. Environment variables (ZIPKIT_*)
3. Config files (user > system)
4. Defaults

Applications opt in to the environment and config files by constructing a
ConfigResolver and passing it to `zipkit.configure()`; the implicit default
service uses `ConfigResolver.builtin()`, which reads neither.

Configuration only covers ambient behavior (logging, diagnostics, codec
tuning). Naming policy, exclusions and overwrite behavior are always passed
per call.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from zipkit.core.errors import ConfigError

ALLOWED_LOGGING_LEVELS = frozenset({"quiet", "normal", "verbose", "debug"})
DEFAULT_LOGGING_LEVEL = "normal"

ALLOWED_COMPRESSIONS = frozenset({"deflated", "stored"})
DEFAULT_COMPRESSION = "deflated"

DEFAULT_COPY_CHUNK_SIZE = 1024 * 1024

ENV_PREFIX = "ZIPKIT_"


@dataclass
class ConfigSource:
    """Represents where a config value came from."""

    value: Any
    source: str  # 'cli' | 'env' | 'user_config' | 'system_config' | 'default'


@dataclass(frozen=True)
class LoggingPolicy:
    """Resolved, immutable logging policy."""

    level_name: str  # quiet | normal | verbose | debug
    emit_error: bool
    emit_warning: bool
    emit_info: bool
    emit_debug: bool
    sources: dict[str, ConfigSource]


def _flatten_keys(data: dict[str, Any], prefix: str = "") -> set[str]:
    keys: set[str] = set()
    for key, value in data.items():
        key_path = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, dict):
            keys.update(_flatten_keys(value, key_path))
        else:
            keys.add(key_path)
    return keys


class ConfigResolver:
    """Resolve configuration with strict layered priority.

    Example:
        resolver = ConfigResolver(
            cli_args={'archives': {'compression': 'stored'}},
            user_config_path=Path('~/.config/zipkit/config.yaml'),
        )

        compression, source = resolver.resolve('archives.compression')
        # compression = 'stored', source = 'cli'
    """

    def __init__(
        self,
        cli_args: dict[str, Any] | None = None,
        user_config_path: Path | None = None,
        system_config_path: Path | None = None,
        defaults: dict[str, Any] | None = None,
        *,
        read_env: bool = True,
        read_files: bool = True,
    ) -> None:
        """Initialize config resolver.

        Args:
            cli_args: Explicit overrides (highest priority)
            user_config_path: Path to user config file
            system_config_path: Path to system config file
            defaults: Default values (lowest priority)
            read_env: Consult ZIPKIT_* environment variables
            read_files: Consult the user and system YAML files
        """
        self.cli_args = cli_args or {}
        self.user_config_path = user_config_path or Path.home() / ".config/zipkit/config.yaml"
        self.system_config_path = system_config_path or Path("/etc/zipkit/config.yaml")
        self.defaults = defaults if defaults is not None else self._default_config()
        self.read_env = read_env
        self.read_files = read_files

        self._user_config: dict[str, Any] | None = None
        self._system_config: dict[str, Any] | None = None

    @classmethod
    def builtin(cls, cli_args: dict[str, Any] | None = None) -> ConfigResolver:
        """Resolver limited to explicit args and built-in defaults.

        Neither the environment nor any config file is read.
        """
        return cls(cli_args, read_env=False, read_files=False)

    def resolve(self, key: str) -> tuple[Any, str]:
        """Resolve config value with priority.

        Args:
            key: Config key (supports dot notation: 'logging.level')

        Returns:
            (value, source) tuple

        Raises:
            ConfigError: If key not found in any source
        """
        value = self._from_cli(key)
        if value is not None:
            return value, "cli"

        value = self._from_env(key)
        if value is not None:
            return value, "env"

        value = self._from_user_config(key)
        if value is not None:
            return value, "user_config"

        value = self._from_system_config(key)
        if value is not None:
            return value, "system_config"

        value = self._from_defaults(key)
        if value is not None:
            return value, "default"

        raise ConfigError(f"Config key '{key}' not found in any source")

    def resolve_all(self) -> dict[str, ConfigSource]:
        """Resolve every key known from defaults, config files and CLI args."""
        all_keys: set[str] = set()
        all_keys.update(_flatten_keys(self.defaults))
        all_keys.update(_flatten_keys(self.cli_args))
        all_keys.update(_flatten_keys(self._get_user_config()))
        all_keys.update(_flatten_keys(self._get_system_config()))

        result: dict[str, ConfigSource] = {}
        for key in sorted(all_keys):
            try:
                value, source = self.resolve(key)
            except ConfigError:
                continue
            result[key] = ConfigSource(value=value, source=source)
        return result

    def resolve_logging_level(self) -> str:
        """Resolve and validate logging.level.

        Allowed values (after normalization):
            quiet | normal | verbose | debug

        Raises:
            ConfigError: If the resolved value is invalid.
        """
        level, _src = self._resolve_logging_level_and_source()
        return level

    def resolve_logging_policy(self) -> LoggingPolicy:
        """Resolve the logging policy without changing runtime logging."""
        level_name, src = self._resolve_logging_level_and_source()

        return LoggingPolicy(
            level_name=level_name,
            emit_error=True,
            emit_warning=True,
            emit_info=level_name != "quiet",
            emit_debug=level_name == "debug",
            sources={"level_name": src},
        )

    def resolve_compression(self) -> str:
        """Resolve archives.compression ('deflated' or 'stored')."""
        key = "archives.compression"
        found = self._try_resolve_value(key)
        if found is None:
            return DEFAULT_COMPRESSION
        value, _src = found
        if not isinstance(value, str):
            raise ConfigError(f"Config key '{key}' must be a string, got {type(value).__name__}")
        norm = value.strip().lower()
        if norm not in ALLOWED_COMPRESSIONS:
            allowed = ", ".join(sorted(ALLOWED_COMPRESSIONS))
            raise ConfigError(f"Invalid '{key}': {value!r}. Allowed values: {allowed}")
        return norm

    def resolve_copy_chunk_size(self) -> int:
        """Resolve archives.copy_chunk_size as a positive int.

        Environment values arrive as strings and are accepted when numeric.
        """
        key = "archives.copy_chunk_size"
        found = self._try_resolve_value(key)
        if found is None:
            return DEFAULT_COPY_CHUNK_SIZE
        value, _src = found
        if isinstance(value, bool):
            raise ConfigError(f"Config key '{key}' must be an int")
        if isinstance(value, str) and value.strip().isdigit():
            value = int(value.strip())
        if not isinstance(value, int):
            raise ConfigError(f"Config key '{key}' must be an int")
        if value <= 0:
            raise ConfigError(f"Config key '{key}' must be > 0")
        return value

    def _resolve_logging_level_and_source(self) -> tuple[str, ConfigSource]:
        key = "logging.level"
        found = self._try_resolve_value(key)

        if found is None:
            return DEFAULT_LOGGING_LEVEL, ConfigSource(
                value=DEFAULT_LOGGING_LEVEL,
                source="default",
            )

        value, source = found
        if not isinstance(value, str):
            raise ConfigError(f"Config key '{key}' must be a string, got {type(value).__name__}")

        norm = value.strip().lower()
        if norm == "":
            raise ConfigError(f"Config key '{key}' must not be empty")

        if norm not in ALLOWED_LOGGING_LEVELS:
            allowed = ", ".join(sorted(ALLOWED_LOGGING_LEVELS))
            raise ConfigError(f"Invalid '{key}': {value!r}. Allowed values: {allowed}")

        return norm, ConfigSource(value=norm, source=source)

    def _try_resolve_value(self, key: str) -> tuple[Any, str] | None:
        try:
            return self.resolve(key)
        except ConfigError as e:
            if "not found in any source" in str(e):
                return None
            raise

    def _from_cli(self, key: str) -> Any | None:
        return self._get_nested(self.cli_args, key)

    def _from_env(self, key: str) -> Any | None:
        """Get value from environment variables.

        Environment variable format: ZIPKIT_KEY_NAME
        Example: ZIPKIT_LOGGING_LEVEL, ZIPKIT_ARCHIVES_COMPRESSION
        """
        if not self.read_env:
            return None
        env_key = f"{ENV_PREFIX}{key.upper().replace('.', '_')}"
        return os.environ.get(env_key)

    def _from_user_config(self, key: str) -> Any | None:
        return self._get_nested(self._get_user_config(), key)

    def _from_system_config(self, key: str) -> Any | None:
        return self._get_nested(self._get_system_config(), key)

    def _from_defaults(self, key: str) -> Any | None:
        return self._get_nested(self.defaults, key)

    def _get_user_config(self) -> dict[str, Any]:
        if not self.read_files:
            return {}
        if self._user_config is None:
            self._user_config = self._load_yaml(self.user_config_path)
        return self._user_config

    def _get_system_config(self) -> dict[str, Any]:
        if not self.read_files:
            return {}
        if self._system_config is None:
            self._system_config = self._load_yaml(self.system_config_path)
        return self._system_config

    def _load_yaml(self, path: Path) -> dict[str, Any]:
        if not path.exists():
            return {}

        try:
            with open(path) as f:
                data = yaml.safe_load(f)
                return data if isinstance(data, dict) else {}
        except Exception as e:
            raise ConfigError(f"Failed to load config from {path}: {e}") from e

    def _get_nested(self, data: dict[str, Any], key: str) -> Any | None:
        """Get nested value using dot notation.

        Example:
            data = {'logging': {'level': 'debug'}}
            _get_nested(data, 'logging.level') -> 'debug'
        """
        current: Any = data

        for part in key.split("."):
            if not isinstance(current, dict):
                return None
            current = current.get(part)
            if current is None:
                return None

        return current

    @staticmethod
    def _default_config() -> dict[str, Any]:
        """Default configuration."""
        return {
            "logging": {
                "level": DEFAULT_LOGGING_LEVEL,
                "color": True,
            },
            "archives": {
                "compression": DEFAULT_COMPRESSION,
                "copy_chunk_size": DEFAULT_COPY_CHUNK_SIZE,
            },
            "diagnostics": {
                "enabled": False,
                "dir": str(Path.home() / ".zipkit" / "diagnostics"),
            },
        }
