"""Cascade built-in defaults, service settings and function overrides."""

from __future__ import annotations

from typing import Any, Dict, Optional

from ..schemas.optimize import (
    PRESET_ENV,
    PRESET_MINIFY,
    OptimizeSettings,
    ServiceOverrides,
    TransformEntry,
    UnitOverrides,
    node_target,
)

MINIFY_PRESET: TransformEntry = (PRESET_MINIFY, {"builtIns": False, "mangle": False})


def default_settings(runtime: Optional[str] = None) -> OptimizeSettings:
    """Built-in defaults; the preset-env target follows the provider runtime."""

    return OptimizeSettings(
        presets=((PRESET_ENV, {"targets": {"node": node_target(runtime)}}),),
    )


def resolve(
    defaults: OptimizeSettings,
    system: Optional[ServiceOverrides] = None,
    unit: Optional[UnitOverrides] = None,
) -> OptimizeSettings:
    """Return the effective settings for one function.

    Each option is taken from the most specific layer that sets it. Sequences
    replace the lower layer's value outright; nothing is concatenated.
    """

    update: Dict[str, Any] = {}
    for layer in (system, unit):
        if layer is None:
            continue
        update.update(layer.present())
    if not update:
        return defaults
    return defaults.model_copy(update=update)


def transform_presets(settings: OptimizeSettings) -> tuple[TransformEntry, ...]:
    """Presets handed to the bundler; minification runs ahead of user presets."""

    if settings.minify:
        return (MINIFY_PRESET,) + tuple(settings.presets)
    return tuple(settings.presets)


__all__ = ["MINIFY_PRESET", "default_settings", "resolve", "transform_presets"]
