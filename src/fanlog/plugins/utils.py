"""
Plugin utilities for name resolution and config parsing.
"""

from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel

ConfigT = TypeVar("ConfigT", bound=BaseModel)


def get_plugin_name(plugin: Any) -> str:
    """Name used in diagnostics and metric labels.

    The sink's ``name`` attribute when it is a non-blank string, otherwise
    the class name.
    """
    name = getattr(plugin, "name", None)
    if isinstance(name, str) and name.strip():
        return name.strip()
    return type(plugin).__name__ if not isinstance(plugin, type) else plugin.__name__


def parse_plugin_config(
    model: type[ConfigT],
    config: ConfigT | dict[str, Any] | None = None,
    **kwargs: Any,
) -> ConfigT:
    """Build a config model from an instance, a dict and/or keyword overrides.

    Keyword arguments override values from ``config``.

    Raises:
        pydantic.ValidationError: If the merged values are invalid.
    """
    if isinstance(config, model) and not kwargs:
        return config
    data: dict[str, Any] = {}
    if isinstance(config, BaseModel):
        data.update(config.model_dump())
    elif config is not None:
        data.update(config)
    data.update(kwargs)
    return model.model_validate(data)
