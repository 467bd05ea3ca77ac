"""Bundle builder contract and the subprocess-backed implementation."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from ..errors import BuildError
from ..schemas.optimize import TransformEntry

logger = logging.getLogger(__name__)

DRIVER_SCRIPT = Path(__file__).with_name("driver.js")


@dataclass(slots=True)
class BundleOptions:
    """Options for one bundle build, in the order transforms are applied."""

    exclude: Tuple[str, ...] = ()
    external: Tuple[str, ...] = ()
    extensions: Tuple[str, ...] = ()
    global_: bool = False
    ignore: Tuple[str, ...] = ()
    plugins: Tuple[TransformEntry, ...] = ()
    presets: Tuple[TransformEntry, ...] = ()

    def to_dict(self) -> Dict[str, object]:
        return {
            "exclude": list(self.exclude),
            "external": list(self.external),
            "extensions": list(self.extensions),
            "global": self.global_,
            "ignore": list(self.ignore),
            "plugins": [_entry_to_json(entry) for entry in self.plugins],
            "presets": [_entry_to_json(entry) for entry in self.presets],
        }


def _entry_to_json(entry: TransformEntry) -> object:
    if isinstance(entry, str):
        return entry
    return list(entry)


class BundleBuilder(ABC):
    """Turns an entry file into a single transformed bundle.

    Implementations must tolerate concurrent ``build`` calls.
    """

    name: str

    @abstractmethod
    async def build(self, entry_file: Path, options: BundleOptions) -> bytes:
        ...


class SubprocessBundleBuilder(BundleBuilder):
    """Runs an external bundler command, request JSON on stdin and bundle on stdout."""

    name = "subprocess"

    def __init__(
        self,
        command: Optional[Sequence[str]] = None,
        *,
        cwd: Optional[Path] = None,
        env: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.command: List[str] = list(command) if command else ["node", str(DRIVER_SCRIPT)]
        self.cwd = cwd
        self.env: Dict[str, str] = dict(env or {})
        self.timeout = timeout

    async def build(self, entry_file: Path, options: BundleOptions) -> bytes:
        request = json.dumps({"entry": str(entry_file), "options": options.to_dict()})
        logger.debug("Optimize: running %s for %s", " ".join(self.command), entry_file)

        def _run() -> subprocess.CompletedProcess[bytes]:
            return subprocess.run(
                self.command,
                input=request.encode("utf-8"),
                capture_output=True,
                cwd=str(self.cwd) if self.cwd else None,
                env={**os.environ, **self.env},
                timeout=self.timeout,
                check=False,
            )

        try:
            proc = await asyncio.to_thread(_run)
        except FileNotFoundError as exc:
            raise BuildError(f"Bundler command not found: {self.command[0]}") from exc
        except subprocess.TimeoutExpired as exc:
            raise BuildError(f"Bundling {entry_file} timed out after {self.timeout}s") from exc

        if proc.returncode != 0:
            stderr = proc.stderr.decode("utf-8", errors="replace").strip()
            raise BuildError(
                f"Bundling {entry_file} failed with exit code {proc.returncode}: {stderr}",
                returncode=proc.returncode,
                stderr=stderr,
            )
        return proc.stdout
