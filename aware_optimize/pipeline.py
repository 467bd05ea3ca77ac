"""Output directory lifecycle and fan-out of artifact assembly."""

from __future__ import annotations

import asyncio
import json
import logging
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from .assembler import ArtifactAssembler, UnitBuildResult
from .bundle.builder import BundleBuilder, SubprocessBundleBuilder
from .bundle.externals import ExternalLocator, ModuleLookup
from .bundle.fs import FileSystem
from .bundle.paths import PathResolver
from .config.resolver import default_settings, resolve
from .errors import FilesystemError, OptimizeError, OutputCollisionError
from .host import BuildUnit, ServiceHost
from .schemas.optimize import OptimizeSettings, PackageManifest, ServiceOverrides

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PipelineReport:
    output_root: Path
    settings: OptimizeSettings
    package: Optional[PackageManifest] = None
    results: List[UnitBuildResult] = field(default_factory=list)

    @property
    def individually(self) -> bool:
        return self.settings.individually

    def to_dict(self) -> Dict[str, object]:
        return {
            "output_root": str(self.output_root),
            "individually": self.individually,
            "options": self.settings.model_dump(mode="json", by_alias=True),
            "package": self.package.model_dump() if self.package else None,
            "functions": [result.to_dict() for result in self.results],
        }


class PipelineController:
    """Cleans the output root, builds the requested functions and tidies up afterwards."""

    def __init__(
        self,
        host: ServiceHost,
        builder: Optional[BundleBuilder] = None,
        *,
        filesystem: Optional[FileSystem] = None,
        lookup: Optional[ModuleLookup] = None,
    ) -> None:
        self.host = host
        self.paths = PathResolver(host.service_root)
        self.builder = builder or SubprocessBundleBuilder(cwd=host.service_root)
        self.filesystem = filesystem or FileSystem()
        self.locator = ExternalLocator(self.paths, lookup)
        self.report: Optional[PipelineReport] = None

    def service_layers(self) -> tuple[OptimizeSettings, ServiceOverrides]:
        defaults = default_settings(self.host.runtime)
        system = ServiceOverrides.from_raw(
            self.host.custom.get("optimize"),
            individually=self.host.individually,
        )
        return defaults, system

    def service_settings(self) -> OptimizeSettings:
        defaults, system = self.service_layers()
        return resolve(defaults, system)

    def assembler(self) -> ArtifactAssembler:
        defaults, system = self.service_layers()
        return ArtifactAssembler(
            self.paths,
            self.builder,
            defaults=defaults,
            system=system,
            filesystem=self.filesystem,
            locator=self.locator,
        )

    def units_in_scope(self) -> List[BuildUnit]:
        if self.host.function:
            return [self.host.get_unit(self.host.function)]
        return self.host.list_units()

    async def before_build(self) -> PipelineReport:
        logger.info("Optimize: starting engines")
        assembler = self.assembler()
        settings = resolve(assembler.defaults, assembler.system)
        units = self.units_in_scope()
        self._check_output_folders(assembler, units)

        report = PipelineReport(output_root=self.paths.output_root(settings.prefix), settings=settings)
        self.report = report

        await self._clean(report.output_root)
        if not settings.individually:
            report.package = PackageManifest.only(settings.prefix)
            self.host.install_package(report.package)
        try:
            await self.filesystem.make_dirs(report.output_root)
        except OSError as exc:
            raise FilesystemError(f"Unable to create {report.output_root}: {exc}") from exc

        async def _assemble(unit: BuildUnit) -> None:
            report.results.append(await assembler.assemble(unit))

        try:
            await asyncio.gather(*(_assemble(unit) for unit in units))
        except OptimizeError as exc:
            logger.error("Optimize: %s failed: %s", exc.unit or "build", exc)
            raise
        return report

    async def after_build(self) -> Optional[PipelineReport]:
        settings = self.report.settings if self.report else self.service_settings()
        if settings.debug:
            if self.report is not None:
                logger.info("Optimize: debug %s", json.dumps(self.report.to_dict(), indent=2, default=str))
            return self.report
        await self._clean(self.paths.output_root(settings.prefix))
        return self.report

    async def _clean(self, output_root: Path) -> None:
        root = output_root.resolve()
        base = self.host.service_root.resolve()
        if root == base or base not in root.parents:
            raise FilesystemError(f"Refusing to clean {output_root}: not inside {self.host.service_root}")
        try:
            await self.filesystem.remove_tree(output_root)
        except OSError as exc:
            raise FilesystemError(f"Unable to clean {output_root}: {exc}") from exc

    def _check_output_folders(self, assembler: ArtifactAssembler, units: Iterable[BuildUnit]) -> None:
        folders = {
            unit.key: assembler.layout_for(unit).output_folder
            for unit in units
            if not unit.opt_out
        }
        counts = Counter(folders.values())
        for key, folder in folders.items():
            if counts[folder] > 1:
                clashing = sorted(other for other, value in folders.items() if value == folder)
                raise OutputCollisionError(
                    f"Functions {', '.join(clashing)} would all be written to '{folder}'.",
                    unit=key,
                )
