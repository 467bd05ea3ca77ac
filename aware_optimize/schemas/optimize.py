"""Pydantic models describing optimize settings and packaging manifests."""

from __future__ import annotations

import logging
from pathlib import PureWindowsPath
from typing import Annotated, Any, ClassVar, Dict, FrozenSet, Mapping, Optional, Tuple, Type, TypeVar, Union

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, StrictBool, StrictStr, TypeAdapter, ValidationError

from ..errors import ConfigShapeError

logger = logging.getLogger(__name__)

SUPPORTED_RUNTIMES = frozenset(
    {
        "nodejs4.3",
        "nodejs6.10",
        "nodejs8.10",
        "nodejs10.x",
        "nodejs12.x",
        "nodejs14.x",
    }
)

PRESET_ENV = "@babel/preset-env"
PRESET_MINIFY = "babel-preset-minify"

# A babel plugin or preset: either its name or a ``[name, options]`` pair.
TransformEntry = Union[StrictStr, Tuple[StrictStr, Dict[str, Any]]]


def _relative_folder(value: str) -> str:
    """Accept a non-empty relative POSIX folder that cannot climb out of its root."""

    if not value or value.startswith("/") or "\\" in value or PureWindowsPath(value).drive:
        raise ValueError(f"Folder must be relative to the service root (got '{value}')")
    segments = value.rstrip("/").split("/")
    if any(segment in {"", ".", ".."} for segment in segments):
        raise ValueError(f"Folder must not contain empty, '.' or '..' segments (got '{value}')")
    return value


RelativeFolder = Annotated[StrictStr, AfterValidator(_relative_folder)]

_STRING_LIST = TypeAdapter(Tuple[StrictStr, ...])
_TRANSFORM_LIST = TypeAdapter(Tuple[TransformEntry, ...])
_FLAG = TypeAdapter(StrictBool)
_FOLDER = TypeAdapter(RelativeFolder)
_PATH_MAP = TypeAdapter(Dict[StrictStr, StrictStr])

_FIELD_SHAPES: Dict[str, TypeAdapter] = {
    "debug": _FLAG,
    "exclude": _STRING_LIST,
    "external": _STRING_LIST,
    "external_paths": _PATH_MAP,
    "extensions": _STRING_LIST,
    "global_": _FLAG,
    "include_paths": _STRING_LIST,
    "ignore": _STRING_LIST,
    "minify": _FLAG,
    "plugins": _TRANSFORM_LIST,
    "prefix": _FOLDER,
    "presets": _TRANSFORM_LIST,
    "individually": _FLAG,
}


def is_supported_runtime(runtime: Optional[str]) -> bool:
    """Return True when functions on ``runtime`` can be bundled (unset counts as node)."""

    return not runtime or runtime in SUPPORTED_RUNTIMES


def node_target(runtime: Optional[str]) -> str:
    """Map a provider runtime such as ``nodejs12.x`` to a preset-env node target."""

    if not runtime:
        return "current"
    version = runtime.split("nodejs", 1)[-1]
    if version.endswith(".x"):
        version = version[: -len(".x")]
    return version


def validate_option(name: str, value: object) -> Any:
    """Validate one option value against its expected shape."""

    try:
        return _FIELD_SHAPES[name].validate_python(value)
    except ValidationError as exc:
        raise ConfigShapeError(name, value) from exc


class PackageManifest(BaseModel):
    """Glob lists deciding which files enter a deployment artifact."""

    exclude: list[str] = Field(default_factory=list)
    include: list[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")

    @classmethod
    def only(cls, folder: str) -> "PackageManifest":
        """Manifest excluding everything but ``folder``."""

        return cls(exclude=["**"], include=[f"{folder.rstrip('/')}/**"])


class OptimizeSettings(BaseModel):
    """Effective, immutable optimize configuration for one function."""

    debug: bool = False
    exclude: Tuple[str, ...] = ("aws-sdk",)
    external: Tuple[str, ...] = ()
    external_paths: Dict[str, str] = Field(default_factory=dict, alias="externalPaths")
    extensions: Tuple[str, ...] = ()
    global_: bool = Field(default=False, alias="global")
    include_paths: Tuple[str, ...] = Field(default=(), alias="includePaths")
    ignore: Tuple[str, ...] = ()
    minify: bool = True
    plugins: Tuple[TransformEntry, ...] = ()
    prefix: str = "_optimize"
    presets: Tuple[TransformEntry, ...] = ()
    individually: bool = False

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")


_LayerT = TypeVar("_LayerT", bound="_OverrideLayer")


class _OverrideLayer(BaseModel):
    """Optional overrides; ``model_fields_set`` records which options are present."""

    host_fields: ClassVar[FrozenSet[str]] = frozenset()

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    @classmethod
    def from_raw(cls: Type[_LayerT], raw: object, **host_values: object) -> _LayerT:
        """Build the layer from loosely shaped data, dropping malformed options."""

        accepted: Dict[str, Any] = {}
        if isinstance(raw, Mapping):
            for name, field in cls.model_fields.items():
                if name in cls.host_fields:
                    continue
                key = field.alias or name
                if key not in raw:
                    continue
                try:
                    accepted[name] = validate_option(name, raw[key])
                except ConfigShapeError as exc:
                    logger.debug("Optimize: %s", exc)
        for name, value in host_values.items():
            if value is None:
                continue
            try:
                accepted[name] = validate_option(name, value)
            except ConfigShapeError as exc:
                logger.debug("Optimize: %s", exc)
        return cls.model_validate(accepted)

    def present(self) -> Dict[str, Any]:
        """Options explicitly set on this layer, keyed by field name."""

        return {name: getattr(self, name) for name in sorted(self.model_fields_set)}

    def to_raw(self) -> Dict[str, Any]:
        """Present options keyed the way service files spell them."""

        return self.model_dump(mode="json", by_alias=True, include=self.model_fields_set)


class UnitOverrides(_OverrideLayer):
    """Per-function ``optimize`` overrides."""

    exclude: Optional[Tuple[str, ...]] = None
    external: Optional[Tuple[str, ...]] = None
    external_paths: Optional[Dict[str, str]] = Field(default=None, alias="externalPaths")
    extensions: Optional[Tuple[str, ...]] = None
    global_: Optional[bool] = Field(default=None, alias="global")
    include_paths: Optional[Tuple[str, ...]] = Field(default=None, alias="includePaths")
    ignore: Optional[Tuple[str, ...]] = None
    minify: Optional[bool] = None
    plugins: Optional[Tuple[TransformEntry, ...]] = None
    presets: Optional[Tuple[TransformEntry, ...]] = None


class ServiceOverrides(UnitOverrides):
    """Service-wide ``custom.optimize`` settings; ``individually`` comes from the host package."""

    host_fields: ClassVar[FrozenSet[str]] = frozenset({"individually"})

    debug: Optional[bool] = None
    prefix: Optional[str] = None
    individually: Optional[bool] = None


__all__ = [
    "OptimizeSettings",
    "PackageManifest",
    "ServiceOverrides",
    "TransformEntry",
    "UnitOverrides",
    "PRESET_ENV",
    "PRESET_MINIFY",
    "SUPPORTED_RUNTIMES",
    "is_supported_runtime",
    "node_target",
    "validate_option",
]
