from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, List, Mapping, Optional, Sequence, Tuple

import pytest

from aware_optimize.bundle.builder import BundleBuilder, BundleOptions
from aware_optimize.errors import BuildError
from aware_optimize.host import ServiceDefinition, parse_service
from aware_optimize.schemas.optimize import PRESET_MINIFY


def is_minified(options: BundleOptions) -> bool:
    return any(not isinstance(entry, str) and entry[0] == PRESET_MINIFY for entry in options.presets)


class RecordingBundleBuilder(BundleBuilder):
    """Bundles by echoing the entry file, tagged with whether minification was requested."""

    name = "recording"

    def __init__(
        self,
        *,
        fail_for: Sequence[str] = (),
        on_build: Optional[Callable[[Path, BundleOptions], None]] = None,
    ) -> None:
        self.fail_for = set(fail_for)
        self.on_build = on_build
        self.calls: List[Tuple[Path, BundleOptions]] = []

    async def build(self, entry_file: Path, options: BundleOptions) -> bytes:
        self.calls.append((entry_file, options))
        if self.on_build is not None:
            self.on_build(entry_file, options)
        if entry_file.stem in self.fail_for:
            raise BuildError(f"SyntaxError: Unexpected token in {entry_file}")
        header = "/* minified */" if is_minified(options) else "/* plain */"
        return f"{header}\n{entry_file.read_text(encoding='utf-8')}".encode("utf-8")


def write_file(path: Path, content: str = "") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture()
def service_root(tmp_path: Path) -> Path:
    root = tmp_path / "service"
    write_file(root / "handlers" / "a.js", "module.exports.main = () => 'a'\n")
    write_file(root / "handlers" / "b.js", "module.exports.main = () => 'b'\n")
    return root


@pytest.fixture()
def builder() -> RecordingBundleBuilder:
    return RecordingBundleBuilder()


@pytest.fixture()
def make_service(service_root: Path) -> Callable[..., ServiceDefinition]:
    def _make(
        functions: Optional[Mapping[str, Any]] = None,
        *,
        optimize: Optional[Mapping[str, Any]] = None,
        individually: bool = True,
        runtime: Optional[str] = None,
        function: Optional[str] = None,
    ) -> ServiceDefinition:
        data: dict[str, Any] = {
            "functions": functions
            or {
                "A": {"handler": "handlers/a.main"},
                "B": {"handler": "handlers/b.main"},
            },
            "package": {"individually": individually},
        }
        if optimize is not None:
            data["custom"] = {"optimize": dict(optimize)}
        if runtime is not None:
            data["provider"] = {"name": "aws", "runtime": runtime}
        return parse_service(data, service_root, function=function)

    return _make
