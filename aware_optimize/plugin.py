"""Lifecycle hooks binding the optimizer to the host's packaging events."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Dict, Optional

from .bundle.builder import BundleBuilder
from .bundle.externals import ModuleLookup
from .bundle.fs import FileSystem
from .host import ServiceHost
from .pipeline import PipelineController
from .schemas.optimize import is_supported_runtime

logger = logging.getLogger(__name__)

Hook = Callable[[], Awaitable[object]]

PACKAGE_FUNCTION = "package:function:package"
PACKAGE_ARTIFACTS = "package:createDeploymentArtifacts"
INVOKE_LOCAL = "invoke:local:invoke"
LIFECYCLE_EVENTS = (PACKAGE_FUNCTION, PACKAGE_ARTIFACTS, INVOKE_LOCAL)


class OptimizePlugin:
    """Registers before/after hooks for packaging and local invocation.

    Hosts on runtimes the bundler cannot target get no hooks at all.
    """

    def __init__(
        self,
        host: ServiceHost,
        *,
        builder: Optional[BundleBuilder] = None,
        filesystem: Optional[FileSystem] = None,
        lookup: Optional[ModuleLookup] = None,
    ) -> None:
        self.host = host
        self.controller = PipelineController(host, builder, filesystem=filesystem, lookup=lookup)
        self.hooks: Dict[str, Hook] = {}
        if not is_supported_runtime(host.runtime):
            logger.debug("Optimize: runtime %s not supported, hooks disabled", host.runtime)
            return
        for event in LIFECYCLE_EVENTS:
            self.hooks[f"before:{event}"] = self.controller.before_build
            self.hooks[f"after:{event}"] = self.controller.after_build

    async def trigger(self, hook: str) -> Optional[object]:
        callback = self.hooks.get(hook)
        if callback is None:
            return None
        return await callback()
