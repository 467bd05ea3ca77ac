"""Bundle, transpile and minify serverless functions into per-function artifacts."""

__version__ = "0.1.0"
from .assembler import ArtifactAssembler, UnitBuildResult, UnitStatus
from .bundle.builder import BundleBuilder, BundleOptions, SubprocessBundleBuilder
from .config.resolver import default_settings, resolve
from .errors import (
    BuildError,
    FilesystemError,
    OptimizeError,
    OutputCollisionError,
    ResourceCopyError,
)
from .host import BuildUnit, ServiceDefinition, ServiceHost, load_service, parse_service
from .pipeline import PipelineController, PipelineReport
from .plugin import OptimizePlugin
from .schemas.optimize import OptimizeSettings, PackageManifest, ServiceOverrides, UnitOverrides

__all__ = [
    "__version__",
    "ArtifactAssembler",
    "UnitBuildResult",
    "UnitStatus",
    "BundleBuilder",
    "BundleOptions",
    "SubprocessBundleBuilder",
    "default_settings",
    "resolve",
    "BuildError",
    "FilesystemError",
    "OptimizeError",
    "OutputCollisionError",
    "ResourceCopyError",
    "BuildUnit",
    "ServiceDefinition",
    "ServiceHost",
    "load_service",
    "parse_service",
    "PipelineController",
    "PipelineReport",
    "OptimizePlugin",
    "OptimizeSettings",
    "PackageManifest",
    "ServiceOverrides",
    "UnitOverrides",
]
