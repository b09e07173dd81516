"""Load DiffwatchConfig from diffwatch.toml / diffwatch.yaml if present.

Merges file config with CLI kwargs. CLI overrides file.
"""

from __future__ import annotations

import tomllib
from pathlib import Path

import yaml

from diffwatch._errors import ConfigError
from diffwatch.config import DiffwatchConfig

_KNOWN_KEYS = frozenset({
    "recursive",
    "debounce_ms",
    "event_buffer",
    "error_buffer",
    "max_diff_bytes",
    "context_lines",
    "poll_step_ms",
    "exclude_dirs",
})


def load_config(root: Path, **overrides: object) -> DiffwatchConfig:
    """Load DiffwatchConfig for root, optionally merging a config file.

    Looks for diffwatch.toml, diffwatch.yaml or diffwatch.yml in root (or in
    root's parent when root is a file). Overrides whose value is None are
    ignored so that unset CLI flags do not mask file values.
    """
    root = Path(root)
    file_config = _read_config_file(root if root.is_dir() else root.parent)
    merged = {**file_config, **{k: v for k, v in overrides.items() if v is not None}}
    if "exclude_dirs" in merged:
        merged["exclude_dirs"] = _coerce_dir_names(merged["exclude_dirs"])
    return DiffwatchConfig(root=root, **merged)  # type: ignore[arg-type]


def _coerce_dir_names(value: object) -> frozenset[str]:
    if isinstance(value, str) or not isinstance(value, (list, tuple, set, frozenset)):
        msg = f"exclude_dirs must be a list of directory names, got {value!r}"
        raise ConfigError(msg)
    return frozenset(str(name) for name in value)


def _read_config_file(directory: Path) -> dict[str, object]:
    """Read config from toml/yaml if present. Returns empty dict otherwise."""
    toml_path = directory / "diffwatch.toml"
    if toml_path.is_file():
        return _parse_toml(toml_path)
    for name in ("diffwatch.yaml", "diffwatch.yml"):
        path = directory / name
        if path.is_file():
            return _parse_yaml(path)
    return {}


def _parse_toml(path: Path) -> dict[str, object]:
    try:
        data = tomllib.loads(path.read_text())
    except (OSError, tomllib.TOMLDecodeError) as e:
        msg = f"cannot read {path}: {e}"
        raise ConfigError(msg) from e
    return _flatten_section(data)


def _parse_yaml(path: Path) -> dict[str, object]:
    try:
        data = yaml.safe_load(path.read_text()) or {}
    except (OSError, yaml.YAMLError) as e:
        msg = f"cannot read {path}: {e}"
        raise ConfigError(msg) from e
    if not isinstance(data, dict):
        msg = f"{path} must contain a mapping at the top level"
        raise ConfigError(msg)
    return _flatten_section(data)


def _flatten_section(data: dict[str, object]) -> dict[str, object]:
    """Extract diffwatch.* keys into top-level config."""
    result: dict[str, object] = {}
    section = data.get("diffwatch")
    if isinstance(section, dict):
        result.update({k: v for k, v in section.items() if k in _KNOWN_KEYS})
    for k, v in data.items():
        if k != "diffwatch" and k in _KNOWN_KEYS:
            result[k] = v
    return result
