"""Map function-relative identifiers onto the service directory."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass
from pathlib import Path

ENTRY_EXTENSION = ".js"
RELATIVE_MARKER = "./"


def strip_relative_marker(value: str) -> str:
    """Drop a single leading ``./`` from an include path or external name."""

    if value.startswith(RELATIVE_MARKER):
        return value[len(RELATIVE_MARKER) :]
    return value


@dataclass(frozen=True, slots=True)
class HandlerRef:
    """A ``modulePath.exportedSymbol`` handler reference split at its last dot."""

    module_path: str
    symbol: str

    @classmethod
    def parse(cls, handler: str) -> "HandlerRef":
        index = handler.rfind(".")
        if index <= 0 or index == len(handler) - 1:
            raise ValueError(f"Handler must look like 'path/module.export' (got '{handler}')")
        return cls(module_path=handler[:index], symbol=handler[index + 1 :])

    @property
    def module_dir(self) -> str:
        return posixpath.dirname(self.module_path)

    def within(self, folder: str) -> str:
        """The same handler relocated under ``folder``."""

        return f"{folder}/{self.module_path}.{self.symbol}"

    def __str__(self) -> str:
        return f"{self.module_path}.{self.symbol}"


@dataclass(frozen=True, slots=True)
class UnitLayout:
    """Where one function's sources live and where its artifact is written."""

    handler: HandlerRef
    output_folder: str
    entry_file: Path
    bundle_file: Path
    modules_folder: str

    @property
    def optimized_handler(self) -> str:
        return self.handler.within(self.output_folder)


class PathResolver:
    """Resolves service-relative paths against an absolute service root."""

    def __init__(self, service_root: Path) -> None:
        self.service_root = Path(service_root)

    def path(self, relative: str) -> Path:
        return self.service_root / relative

    def relative(self, path: Path) -> str:
        """POSIX path of ``path`` relative to the service root."""

        return Path(path).relative_to(self.service_root).as_posix()

    def output_root(self, prefix: str) -> Path:
        return self.path(prefix)

    def layout(self, prefix: str, unit_name: str, handler: str) -> UnitLayout:
        ref = HandlerRef.parse(handler)
        output_folder = posixpath.join(prefix, unit_name)
        return UnitLayout(
            handler=ref,
            output_folder=output_folder,
            entry_file=self.path(ref.module_path + ENTRY_EXTENSION),
            bundle_file=self.path(posixpath.join(output_folder, ref.module_path + ENTRY_EXTENSION)),
            modules_folder=posixpath.join(output_folder, ref.module_dir, "node_modules"),
        )
