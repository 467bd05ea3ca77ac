"""Error types raised while optimizing functions."""

from __future__ import annotations

from typing import Optional


class OptimizeError(RuntimeError):
    """Base error for optimize failures; ``unit`` names the function involved."""

    def __init__(self, message: str, *, unit: Optional[str] = None) -> None:
        super().__init__(message)
        self.unit = unit

    def __str__(self) -> str:
        message = super().__str__()
        if self.unit:
            return f"[{self.unit}] {message}"
        return message


class BuildError(OptimizeError):
    """Raised when the bundle builder cannot produce a bundle."""

    def __init__(
        self,
        message: str,
        *,
        unit: Optional[str] = None,
        returncode: Optional[int] = None,
        stderr: Optional[str] = None,
    ) -> None:
        super().__init__(message, unit=unit)
        self.returncode = returncode
        self.stderr = stderr


class ResourceCopyError(OptimizeError):
    """Raised when an include path or external resource cannot be copied."""


class FilesystemError(OptimizeError):
    """Raised when the output root cannot be cleaned or created."""


class OutputCollisionError(OptimizeError):
    """Raised when two functions would write into the same output folder."""


class ConfigShapeError(ValueError):
    """A configuration value has the wrong shape; always handled by the override models."""

    def __init__(self, field: str, value: object) -> None:
        super().__init__(f"Ignoring malformed optimize option '{field}': {value!r}")
        self.field = field
        self.value = value


__all__ = [
    "BuildError",
    "ConfigShapeError",
    "FilesystemError",
    "OptimizeError",
    "OutputCollisionError",
    "ResourceCopyError",
]
