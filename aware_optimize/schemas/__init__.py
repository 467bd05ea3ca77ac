"""Schema exports for optimize tooling."""

from .optimize import OptimizeSettings, PackageManifest, ServiceOverrides, UnitOverrides

__all__ = ["OptimizeSettings", "PackageManifest", "ServiceOverrides", "UnitOverrides"]
