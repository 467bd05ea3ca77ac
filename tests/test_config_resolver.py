from __future__ import annotations

import pytest

from aware_optimize.config.resolver import MINIFY_PRESET, default_settings, resolve, transform_presets
from aware_optimize.schemas.optimize import (
    OptimizeSettings,
    PackageManifest,
    ServiceOverrides,
    UnitOverrides,
    is_supported_runtime,
    node_target,
)


def test_default_settings_match_builtin_values() -> None:
    settings = default_settings()
    assert settings.debug is False
    assert settings.exclude == ("aws-sdk",)
    assert settings.external == ()
    assert settings.external_paths == {}
    assert settings.global_ is False
    assert settings.include_paths == ()
    assert settings.minify is True
    assert settings.prefix == "_optimize"
    assert settings.individually is False
    assert settings.presets == (("@babel/preset-env", {"targets": {"node": "current"}}),)


@pytest.mark.parametrize(
    ("runtime", "target"),
    [(None, "current"), ("nodejs12.x", "12"), ("nodejs8.10", "8.10"), ("nodejs4.3", "4.3")],
)
def test_node_target_follows_runtime(runtime: str | None, target: str) -> None:
    assert node_target(runtime) == target
    assert default_settings(runtime).presets[0][1] == {"targets": {"node": target}}


def test_supported_runtimes() -> None:
    assert is_supported_runtime(None)
    assert is_supported_runtime("nodejs14.x")
    assert not is_supported_runtime("python3.9")
    assert not is_supported_runtime("nodejs16.x")


def test_unit_override_beats_service_setting_beats_default() -> None:
    defaults = default_settings()
    system = ServiceOverrides.from_raw({"minify": False, "ignore": ["vendor/**"]})
    unit = UnitOverrides.from_raw({"minify": True})

    assert resolve(defaults, None, None).minify is True
    assert resolve(defaults, system, None).minify is False
    effective = resolve(defaults, system, unit)
    assert effective.minify is True
    assert effective.ignore == ("vendor/**",)


def test_list_override_replaces_instead_of_merging() -> None:
    system = ServiceOverrides.from_raw({"exclude": ["a"]})
    unit = UnitOverrides.from_raw({"exclude": ["b"]})
    assert resolve(default_settings(), system, unit).exclude == ("b",)


def test_precedence_is_field_local() -> None:
    system = ServiceOverrides.from_raw({"exclude": ["a"], "minify": True})
    unit = UnitOverrides.from_raw({"minify": False})
    effective = resolve(default_settings(), system, unit)
    assert effective.exclude == ("a",)
    assert effective.minify is False


def test_malformed_overrides_are_treated_as_absent() -> None:
    unit = UnitOverrides.from_raw(
        {
            "exclude": "aws-sdk",
            "external": ["ok", 3],
            "externalPaths": ["vendor"],
            "global": "yes",
            "minify": "false",
            "plugins": [1],
            "presets": "babel-preset-env",
        }
    )
    assert unit.model_fields_set == set()

    system = ServiceOverrides.from_raw({"exclude": ["a"], "minify": False, "prefix": 7})
    effective = resolve(default_settings(), system, unit)
    assert effective.exclude == ("a",)
    assert effective.minify is False
    assert effective.prefix == "_optimize"


def test_non_mapping_layers_are_empty() -> None:
    assert UnitOverrides.from_raw(None).model_fields_set == set()
    assert UnitOverrides.from_raw(False).model_fields_set == set()
    assert ServiceOverrides.from_raw(["minify"]).model_fields_set == set()


def test_aliased_keys_and_transform_entries() -> None:
    unit = UnitOverrides.from_raw(
        {
            "externalPaths": {"sharp": "vendor/sharp"},
            "includePaths": ["./config.json"],
            "global": True,
            "presets": [["@babel/preset-env", {"targets": {"node": "10"}}], "minify"],
        }
    )
    effective = resolve(default_settings(), None, unit)
    assert effective.external_paths == {"sharp": "vendor/sharp"}
    assert effective.include_paths == ("./config.json",)
    assert effective.global_ is True
    assert effective.presets == (("@babel/preset-env", {"targets": {"node": "10"}}), "minify")
    assert unit.to_raw()["includePaths"] == ["./config.json"]


def test_unit_layer_ignores_service_only_options() -> None:
    unit = UnitOverrides.from_raw({"prefix": "elsewhere", "debug": True, "individually": True})
    assert unit.model_fields_set == set()
    effective = resolve(default_settings(), None, unit)
    assert effective.prefix == "_optimize"
    assert effective.debug is False


@pytest.mark.parametrize("prefix", ["", ".", "..", "/abs", "a/../..", "build//x", "C:\\out", 42])
def test_prefix_outside_service_root_falls_back_to_default(prefix: object) -> None:
    system = ServiceOverrides.from_raw({"prefix": prefix})
    assert "prefix" not in system.model_fields_set
    assert resolve(default_settings(), system).prefix == "_optimize"


def test_nested_relative_prefix_is_accepted() -> None:
    system = ServiceOverrides.from_raw({"prefix": "out/_build"})
    assert resolve(default_settings(), system).prefix == "out/_build"


def test_individually_comes_from_host_package_flag() -> None:
    assert "individually" not in ServiceOverrides.from_raw({"individually": True}).model_fields_set
    system = ServiceOverrides.from_raw({"prefix": "_build"}, individually=True)
    effective = resolve(default_settings(), system)
    assert effective.individually is True
    assert effective.prefix == "_build"


def test_resolve_does_not_mutate_layers() -> None:
    defaults = default_settings()
    system = ServiceOverrides.from_raw({"exclude": ["a"]})
    resolve(defaults, system, UnitOverrides.from_raw({"exclude": ["b"]}))
    assert defaults.exclude == ("aws-sdk",)
    assert system.exclude == ("a",)
    with pytest.raises(Exception):
        defaults.minify = False  # type: ignore[misc]


def test_minify_preset_runs_before_user_presets() -> None:
    settings = resolve(default_settings(), None, UnitOverrides.from_raw({"presets": ["user-preset"]}))
    assert transform_presets(settings) == (MINIFY_PRESET, "user-preset")

    unminified = settings.model_copy(update={"minify": False})
    assert transform_presets(unminified) == ("user-preset",)


def test_package_manifest_only_keeps_folder() -> None:
    manifest = PackageManifest.only("_build/B")
    assert manifest.exclude == ["**"]
    assert manifest.include == ["_build/B/**"]
    assert isinstance(OptimizeSettings().model_dump(by_alias=True)["global"], bool)
