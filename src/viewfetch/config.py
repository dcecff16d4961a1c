"""Engine configuration."""

from __future__ import annotations

import json
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Union

from viewfetch.errors import ConfigError


@dataclass(frozen=True)
class FetchConfig:
    highlight_class: str = "viewfetch-highlight"
    highlight_rgb: tuple[int, int, int] = (255, 170, 0)
    highlight_z_index: int = 100000
    # Preferred interaction targets inside a component, in priority order.
    interaction_selectors: tuple[str, ...] = ("textarea", "input", "button", "select")
    # Element the structural tree is searched and enumerated from.
    document_root: str = "body"

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> FetchConfig:
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown config key(s): {', '.join(unknown)}")

        values: dict[str, Any] = {}
        for name, value in data.items():
            if name in ("highlight_class", "document_root"):
                if not isinstance(value, str) or not value:
                    raise ConfigError(f"{name} must be a non-empty string")
            elif name == "highlight_z_index":
                if not isinstance(value, int) or isinstance(value, bool):
                    raise ConfigError("highlight_z_index must be an integer")
            elif name == "highlight_rgb":
                if (
                    not isinstance(value, (list, tuple))
                    or len(value) != 3
                    or not all(isinstance(c, int) and 0 <= c <= 255 for c in value)
                ):
                    raise ConfigError("highlight_rgb must be three integers in 0..255")
                value = tuple(value)
            elif name == "interaction_selectors":
                if not isinstance(value, (list, tuple)) or not all(
                    isinstance(s, str) and s for s in value
                ):
                    raise ConfigError("interaction_selectors must be a list of selectors")
                value = tuple(value)
            values[name] = value
        return cls(**values)


def load_config(path: Union[str, Path]) -> FetchConfig:
    """Read a FetchConfig from a JSON object file."""
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a JSON object")
    return FetchConfig.from_mapping(data)
