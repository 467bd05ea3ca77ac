"""Per-function artifact assembly: bundle, copy resources, rewrite the handler."""

from __future__ import annotations

import asyncio
import logging
import posixpath
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Dict, Optional

from .bundle.builder import BundleBuilder, BundleOptions
from .bundle.externals import ExternalLocator, ExternalResource
from .bundle.fs import FileSystem
from .bundle.paths import PathResolver, UnitLayout, strip_relative_marker
from .config.resolver import resolve, transform_presets
from .errors import FilesystemError, OptimizeError, ResourceCopyError
from .host import BuildUnit
from .schemas.optimize import OptimizeSettings, PackageManifest, ServiceOverrides

logger = logging.getLogger(__name__)


class UnitStatus(str, Enum):
    SKIPPED = "skipped"
    BUILT = "built"


@dataclass(slots=True)
class UnitBuildResult:
    unit: str
    name: str
    status: UnitStatus
    handler_original: str
    handler_optimized: Optional[str] = None
    bundle: Optional[Path] = None
    package: Optional[PackageManifest] = None
    overrides: Dict[str, object] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, object]:
        payload: Dict[str, object] = {
            "unit": self.unit,
            "name": self.name,
            "status": self.status.value,
            "handler_original": self.handler_original,
        }
        if self.status is UnitStatus.BUILT:
            payload["handler_optimized"] = self.handler_optimized
            payload["bundle"] = str(self.bundle)
            payload["package"] = self.package.model_dump() if self.package else None
        if self.overrides:
            payload["overrides"] = self.overrides
        return payload


def bundle_options(settings: OptimizeSettings) -> BundleOptions:
    """Bundler options for ``settings``; the minify preset, when enabled, comes first."""

    return BundleOptions(
        exclude=tuple(settings.exclude),
        external=tuple(settings.external),
        extensions=tuple(settings.extensions),
        global_=settings.global_,
        ignore=tuple(settings.ignore),
        plugins=tuple(settings.plugins),
        presets=transform_presets(settings),
    )


class ArtifactAssembler:
    """Builds the artifact of one function at a time; safe to run for many functions concurrently."""

    def __init__(
        self,
        paths: PathResolver,
        builder: BundleBuilder,
        *,
        defaults: OptimizeSettings,
        system: Optional[ServiceOverrides] = None,
        filesystem: Optional[FileSystem] = None,
        locator: Optional[ExternalLocator] = None,
    ) -> None:
        self.paths = paths
        self.builder = builder
        self.defaults = defaults
        self.system = system or ServiceOverrides()
        self.filesystem = filesystem or FileSystem()
        self.locator = locator or ExternalLocator(paths)

    def settings_for(self, unit: BuildUnit) -> OptimizeSettings:
        return resolve(self.defaults, self.system, unit.overrides)

    def layout_for(self, unit: BuildUnit, settings: Optional[OptimizeSettings] = None) -> UnitLayout:
        settings = settings or self.settings_for(unit)
        return self.paths.layout(settings.prefix, unit.name, unit.handler)

    async def assemble(self, unit: BuildUnit) -> UnitBuildResult:
        if unit.opt_out:
            logger.debug("Optimize: %s opted out, skipping", unit.name)
            return UnitBuildResult(
                unit=unit.key,
                name=unit.name,
                status=UnitStatus.SKIPPED,
                handler_original=unit.handler,
            )

        settings = self.settings_for(unit)
        layout = self.layout_for(unit, settings)
        logger.info("Optimize: %s", unit.name)

        try:
            payload = await self.builder.build(layout.entry_file, bundle_options(settings))
        except OptimizeError as exc:
            if exc.unit is None:
                exc.unit = unit.name
            raise

        try:
            await self.filesystem.write_bytes(layout.bundle_file, payload)
        except OSError as exc:
            raise FilesystemError(f"Unable to write bundle {layout.bundle_file}: {exc}", unit=unit.name) from exc

        await self._copy_includes(unit, settings, layout)
        await self._copy_externals(unit, settings, layout)

        if settings.individually:
            package = PackageManifest.only(layout.output_folder)
        else:
            package = PackageManifest.only(settings.prefix)
        result = UnitBuildResult(
            unit=unit.key,
            name=unit.name,
            status=UnitStatus.BUILT,
            handler_original=unit.handler,
            handler_optimized=layout.optimized_handler,
            bundle=layout.bundle_file,
            package=package,
            overrides=unit.overrides.to_raw(),
        )
        unit.handler = layout.optimized_handler
        unit.package = package
        return result

    async def _copy_includes(self, unit: BuildUnit, settings: OptimizeSettings, layout: UnitLayout) -> None:
        copies = []
        for include in settings.include_paths:
            relative = strip_relative_marker(include)
            path = PurePosixPath(relative)
            if path.is_absolute() or ".." in path.parts:
                raise ResourceCopyError(f"Include path must stay inside the service: {include}", unit=unit.name)
            copies.append(
                self._copy(
                    unit,
                    self.paths.path(relative),
                    self.paths.path(posixpath.join(layout.output_folder, relative)),
                )
            )
        await asyncio.gather(*copies)

    async def _copy_externals(self, unit: BuildUnit, settings: OptimizeSettings, layout: UnitLayout) -> None:
        resources = [
            self.locator.resolve(name, layout, settings.external_paths)
            for name in settings.external
        ]
        await asyncio.gather(*(self._copy_external(unit, resource) for resource in resources))

    async def _copy_external(self, unit: BuildUnit, resource: ExternalResource) -> None:
        logger.debug("Optimize: %s external %s <- %s", unit.name, resource.name, resource.source)
        await self._copy(unit, resource.source, self.paths.path(resource.destination))

    async def _copy(self, unit: BuildUnit, source: Path, destination: Path) -> None:
        try:
            await self.filesystem.copy(source, destination)
        except OSError as exc:
            raise ResourceCopyError(f"Unable to copy {source} to {destination}: {exc}", unit=unit.name) from exc
