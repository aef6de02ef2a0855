"""Shared configuration utilities: YAML config files, env overrides, config singleton."""

import os
import threading
from pathlib import Path
from typing import Callable, Generic, TypeVar

import yaml

T = TypeVar("T")


def resolve_config_path(
    config_dir: Path,
    config_name: str | None = None,
    env_var: str | None = None,
    default_name: str = "prod",
) -> Path:
    """Resolve <config_dir>/<name>.yaml.

    The name comes from config_name, else from env_var, else default_name.

    Raises:
        FileNotFoundError: If the resolved file doesn't exist
    """
    if config_name is None:
        config_name = os.environ.get(env_var, default_name) if env_var else default_name

    path = config_dir / f"{config_name}.yaml"
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")
    return path


def read_config_file(path: Path) -> dict:
    """Read a YAML config file into a dict; an empty file gives {}.

    Raises:
        ValueError: If the top level of the file is not a mapping
    """
    with path.open() as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping, got {type(data).__name__}")
    return data


def env_flag(name: str, default: bool = True) -> bool:
    """Read a boolean env var where only an explicit "false" disables."""
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() != "false"


def env_number(name: str, default: float | int, cast: Callable = int):
    """Read a numeric env var, falling back to default when unset or blank."""
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    return cast(value)


class ConfigSingleton(Generic[T]):
    """Process-wide config holder, loaded lazily on first get().

    Worker threads may call get() while the event loop does too, so loading
    happens under a lock.

    Example:
        >>> _holder = ConfigSingleton(load_config)
        >>> get_config, set_config, reset_config = _holder.get, _holder.set, _holder.reset
    """

    def __init__(self, loader: Callable[[], T] | None = None):
        self._loader = loader
        self._config: T | None = None
        self._lock = threading.Lock()

    def get(self) -> T:
        with self._lock:
            if self._config is None:
                if self._loader is None:
                    raise RuntimeError("No config loaded and no loader set")
                self._config = self._loader()
            return self._config

    def set(self, config: T) -> None:
        with self._lock:
            self._config = config

    def reset(self) -> None:
        """Drop the held config so the next get() reloads it."""
        with self._lock:
            self._config = None
