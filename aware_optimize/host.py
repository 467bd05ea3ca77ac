"""Host-side view of a service: its functions, settings and packaging."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Protocol

import yaml

from .schemas.optimize import PackageManifest, UnitOverrides

DEFAULT_STAGE = "dev"


@dataclass(slots=True)
class BuildUnit:
    """One deployable function.

    Only ``handler`` and ``package`` are rewritten by the optimizer.
    """

    key: str
    handler: str
    name: str = ""
    overrides: UnitOverrides = field(default_factory=UnitOverrides)
    opt_out: bool = False
    package: Optional[PackageManifest] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.name:
            self.name = self.key

    @classmethod
    def from_mapping(cls, key: str, raw: Mapping[str, Any], *, default_name: Optional[str] = None) -> "BuildUnit":
        handler = raw.get("handler")
        if not isinstance(handler, str) or not handler:
            raise ValueError(f"Function '{key}' is missing a string 'handler'.")
        optimize = raw.get("optimize")
        package = raw.get("package")
        manifest = None
        if isinstance(package, Mapping):
            manifest = PackageManifest(
                exclude=[str(item) for item in package.get("exclude") or []],
                include=[str(item) for item in package.get("include") or []],
            )
        return cls(
            key=key,
            handler=handler,
            name=str(raw.get("name") or default_name or key),
            overrides=UnitOverrides.from_raw(optimize),
            opt_out=optimize is False,
            package=manifest,
            raw=dict(raw),
        )

    def to_mapping(self) -> Dict[str, Any]:
        payload = copy.deepcopy(self.raw)
        payload["handler"] = self.handler
        if self.package is not None:
            payload["package"] = self.package.model_dump()
        return payload


class ServiceHost(Protocol):
    """What the optimizer needs from the orchestration runtime."""

    service_root: Path
    function: Optional[str]
    runtime: Optional[str]
    individually: bool
    custom: Mapping[str, Any]

    def list_units(self) -> List[BuildUnit]:
        ...

    def get_unit(self, key: str) -> BuildUnit:
        ...

    def install_package(self, manifest: PackageManifest) -> None:
        ...


@dataclass
class ServiceDefinition:
    """A ``serverless.yml`` style service loaded into memory."""

    service_root: Path
    functions: Dict[str, BuildUnit] = field(default_factory=dict)
    custom: Dict[str, Any] = field(default_factory=dict)
    package: Dict[str, Any] = field(default_factory=dict)
    provider: Dict[str, Any] = field(default_factory=dict)
    service: Optional[str] = None
    function: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def runtime(self) -> Optional[str]:
        runtime = self.provider.get("runtime")
        return runtime if isinstance(runtime, str) else None

    @property
    def individually(self) -> bool:
        return bool(self.package.get("individually"))

    def list_units(self) -> List[BuildUnit]:
        return list(self.functions.values())

    def get_unit(self, key: str) -> BuildUnit:
        try:
            return self.functions[key]
        except KeyError as exc:
            available = ", ".join(sorted(self.functions)) or "none"
            raise KeyError(f"Unknown function '{key}'. Available functions: {available}.") from exc

    def install_package(self, manifest: PackageManifest) -> None:
        self.package.update(manifest.model_dump())

    def to_dict(self) -> Dict[str, Any]:
        payload = copy.deepcopy(self.raw)
        payload["functions"] = {key: unit.to_mapping() for key, unit in self.functions.items()}
        if self.package:
            payload["package"] = copy.deepcopy(self.package)
        return payload


def parse_service(
    data: Mapping[str, Any],
    service_root: Path,
    *,
    function: Optional[str] = None,
) -> ServiceDefinition:
    """Build a service definition from already-loaded service data."""

    service_name = _service_name(data.get("service"))
    provider = dict(data.get("provider") or {})
    stage = str(provider.get("stage") or DEFAULT_STAGE)

    functions: Dict[str, BuildUnit] = {}
    for key, raw in (data.get("functions") or {}).items():
        if not isinstance(raw, Mapping):
            raise ValueError(f"Function '{key}' must be a mapping.")
        default_name = f"{service_name}-{stage}-{key}" if service_name else None
        functions[str(key)] = BuildUnit.from_mapping(str(key), raw, default_name=default_name)

    custom = data.get("custom")
    package = data.get("package")
    return ServiceDefinition(
        service_root=Path(service_root).resolve(),
        functions=functions,
        custom=dict(custom) if isinstance(custom, Mapping) else {},
        package=dict(package) if isinstance(package, Mapping) else {},
        provider=provider,
        service=service_name,
        function=function,
        raw=dict(data),
    )


def load_service(
    path: Path,
    *,
    service_root: Optional[Path] = None,
    function: Optional[str] = None,
) -> ServiceDefinition:
    """Load a service definition from YAML; the root defaults to the file's directory."""

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Service file not found: {path}")
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, Mapping):
        raise ValueError(f"Service file must contain a mapping: {path}")
    return parse_service(data, service_root or path.parent, function=function)


def dump_service(service: ServiceDefinition, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(service.to_dict(), sort_keys=False), encoding="utf-8")


def _service_name(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value
    if isinstance(value, Mapping) and isinstance(value.get("name"), str):
        return value["name"]
    return None
