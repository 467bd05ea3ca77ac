"""Configuration cascade for optimize settings."""

from .resolver import MINIFY_PRESET, default_settings, resolve, transform_presets

__all__ = ["MINIFY_PRESET", "default_settings", "resolve", "transform_presets"]
