"""Bundle building, path layout and external resource helpers."""

from .builder import BundleBuilder, BundleOptions, SubprocessBundleBuilder
from .externals import ExternalLocator, ExternalResource, NodeModulesLookup
from .fs import FileSystem
from .paths import HandlerRef, PathResolver, UnitLayout

__all__ = [
    "BundleBuilder",
    "BundleOptions",
    "SubprocessBundleBuilder",
    "ExternalLocator",
    "ExternalResource",
    "NodeModulesLookup",
    "FileSystem",
    "HandlerRef",
    "PathResolver",
    "UnitLayout",
]
