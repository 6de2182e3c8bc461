"""Config utility for persistent ScrapeGnome settings (LLM model, language, queue).

Reads and writes $XDG_CONFIG_HOME/scrapegnome/config.toml (default
~/.config/scrapegnome/config.toml) using tomli/tomli-w, and resolves settings
with the precedence CLI > environment > config file > default.
"""

import contextlib
import os
from pathlib import Path
from typing import Any, TypeVar, cast

import tomli
import tomli_w

ENV_PREFIX = "SCRAPEGNOME_"
DEFAULT_LLM_MODEL = "qwen2.5"
_TRUTHY = {"1", "true", "yes", "on"}

T = TypeVar("T")


def config_dir() -> Path:
    """Directory holding config.toml, respecting XDG_CONFIG_HOME."""
    xdg_config_home = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return xdg_config_home / "scrapegnome"


def config_file() -> Path:
    return config_dir() / "config.toml"


def _read_config_file() -> dict[str, Any]:
    """Read the TOML config file if it exists, returning a (nested) dict."""
    path = config_file()
    if not path.exists():
        return {}
    with path.open("rb") as f:
        return tomli.load(f)


def _write_config_file(data: dict[str, Any]) -> None:
    path = config_file()
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("wb") as f:
        tomli_w.dump(data, f)


def get_default_llm_model() -> str:
    """Read the default LLM model from config.toml (``llm.default_model``)."""
    model = _lookup_nested(_read_config_file(), "llm.default_model")
    return str(model) if model else DEFAULT_LLM_MODEL


def set_default_llm_model(model: str) -> None:
    """Set the default LLM model in config.toml.

    Args:
        model (str): The model name to set as default.
    """
    data = _read_config_file()
    data.setdefault("llm", {})["default_model"] = model
    _write_config_file(data)


def _lookup_nested(data: dict[str, Any], dotted_key: str) -> Any | None:
    """Retrieve a nested value from *data* given a dotted key path.

    Example: dotted_key="queue.concurrency" will attempt
    ``data["queue"]["concurrency"]`` returning None if any level is missing.
    """
    current: Any = data
    for part in dotted_key.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
        if current is None:
            return None
    return current


def _make_env_var_name(dotted_key: str, prefix: str = ENV_PREFIX) -> str:
    """Convert a dotted key path to an uppercase ENV var name.

    Example: "queue.max_retries" -> "SCRAPEGNOME_QUEUE_MAX_RETRIES".
    """
    return prefix + dotted_key.replace(".", "_").upper()


def _coerce(value: Any, default: T) -> T:
    """Best-effort conversion of an env/config value to *default*'s type."""
    if isinstance(default, bool):
        if isinstance(value, bool):
            return cast(T, value)
        if isinstance(value, str):
            return cast(T, value.lower() in _TRUTHY)
        return default
    if isinstance(default, int):
        if isinstance(value, int) and not isinstance(value, bool):
            return cast(T, value)
        if isinstance(value, str):
            with contextlib.suppress(ValueError):
                return cast(T, int(value))
        return default
    if isinstance(default, float):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return cast(T, float(value))
        if isinstance(value, str):
            with contextlib.suppress(ValueError):
                return cast(T, float(value))
        return default
    if default is None and isinstance(value, str):
        if value.isdigit():
            return cast(T, int(value))
        with contextlib.suppress(ValueError):
            return cast(T, float(value))
    return cast(T, value)


def resolve_setting(
    key: str,
    *,
    default: T,
    cli_value: T | None = None,
) -> T:
    """Resolve a configuration *key* using precedence CLI > env > config > default.

    Args:
        key: Dotted key path, e.g. ``"llm.default_model"`` or ``"language"``.
        default: Value to fall back to when no overrides found.
        cli_value: Value passed from CLI option (may be ``None`` when not provided).

    Returns:
        The resolved value with type matching *default* (or *cli_value*).
    """
    if cli_value is not None:
        return cli_value

    env_var = _make_env_var_name(key)
    if env_var in os.environ:
        return _coerce(os.environ[env_var], default)

    file_val = _lookup_nested(_read_config_file(), key)
    if file_val is not None:
        return _coerce(file_val, default)

    return default
