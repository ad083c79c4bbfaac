"""
Plugin utilities for configuration parsing and name resolution.
"""

from __future__ import annotations

from typing import Any, Mapping, TypeVar

from pydantic import BaseModel, ValidationError

from ..core.errors import ConfigurationError

M = TypeVar("M", bound=BaseModel)


def parse_plugin_config(
    model: type[M],
    config: M | Mapping[str, Any] | None = None,
    **kwargs: Any,
) -> M:
    """Build ``model`` from an instance, a mapping and/or keyword overrides.

    Keyword arguments win over mapping entries. Passing an instance together
    with overrides produces a validated copy. Validation problems surface as
    ``ConfigurationError`` with the pydantic error as cause.

    Args:
        model: Pydantic model class to build
        config: Existing instance, mapping of fields, or None
        **kwargs: Field overrides

    Returns:
        A validated model instance
    """
    if isinstance(config, model) and not kwargs:
        return config
    data: dict[str, Any] = {}
    if isinstance(config, BaseModel):
        data.update(config.model_dump(exclude_unset=True))
    elif config is not None:
        data.update(dict(config))
    data.update(kwargs)
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(
            f"invalid {model.__name__}: {exc.error_count()} error(s)",
            cause=exc,
            errors=exc.errors(include_url=False),
        ) from exc


def get_plugin_name(plugin: Any) -> str:
    """Return ``plugin.name`` when it is a non-empty string, else the class name."""
    name = getattr(plugin, "name", None)
    if isinstance(name, str) and name.strip():
        return name.strip()
    cls = plugin if isinstance(plugin, type) else plugin.__class__
    return cls.__name__


__all__ = ["get_plugin_name", "parse_plugin_config"]
