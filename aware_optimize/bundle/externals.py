"""Locate external dependencies and decide where they are copied."""

from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Protocol

from .paths import RELATIVE_MARKER, PathResolver, UnitLayout, strip_relative_marker

logger = logging.getLogger(__name__)

NODE_MODULES = "node_modules"


class ModuleLookup(Protocol):
    def find(self, name: str, entry_file: Path) -> Optional[Path]:
        ...


class NodeModulesLookup:
    """Looks for ``node_modules/<name>`` next to the entry file and in every parent directory."""

    def find(self, name: str, entry_file: Path) -> Optional[Path]:
        start = Path(entry_file).parent
        for directory in (start, *start.parents):
            candidate = directory / NODE_MODULES / name
            if candidate.exists():
                return candidate
        return None


@dataclass(frozen=True, slots=True)
class ExternalResource:
    """An external dependency copied beside a bundle."""

    name: str
    source: Path
    destination: str
    local: bool = False


def package_root(path: Path, name: str) -> Path:
    """Trim ``path`` to its last ``node_modules/<name>`` segment, keeping everything before it."""

    parts = Path(path).parts
    name_parts = tuple(name.split("/"))
    for index in range(len(parts) - len(name_parts) - 1, -1, -1):
        if parts[index] == NODE_MODULES and parts[index + 1 : index + 1 + len(name_parts)] == name_parts:
            return Path(*parts[: index + 1 + len(name_parts)])
    return Path(path)


class ExternalLocator:
    """Finds the on-disk source of externals and their place in a function's output folder."""

    def __init__(self, resolver: PathResolver, lookup: Optional[ModuleLookup] = None) -> None:
        self.resolver = resolver
        self.lookup = lookup or NodeModulesLookup()

    def locate(self, name: str, entry_file: Path, external_paths: Optional[Mapping[str, str]] = None) -> Path:
        """Return the source path for external ``name``.

        An explicit ``external_paths`` entry always wins. Names starting with
        ``./`` are local files taken from the service root as-is. Anything else
        is looked up from the entry file, falling back to ``node_modules`` beside it.
        """

        stripped = strip_relative_marker(name)
        overrides = external_paths or {}
        override = overrides.get(stripped, overrides.get(name))
        if override is not None:
            return self.resolver.path(override)
        if name.startswith(RELATIVE_MARKER):
            return self.resolver.path(stripped)

        found = self.lookup.find(stripped, entry_file)
        if found is None:
            fallback = Path(entry_file).parent / NODE_MODULES / stripped
            logger.debug("Optimize: '%s' not found from %s, using %s", stripped, entry_file, fallback)
            return fallback
        return package_root(found, stripped)

    def resolve(
        self,
        name: str,
        layout: UnitLayout,
        external_paths: Optional[Mapping[str, str]] = None,
    ) -> ExternalResource:
        stripped = strip_relative_marker(name)
        return ExternalResource(
            name=stripped,
            source=self.locate(name, layout.entry_file, external_paths),
            destination=posixpath.join(layout.modules_folder, stripped),
            local=name.startswith(RELATIVE_MARKER),
        )
