from __future__ import annotations

import asyncio

from aware_optimize.plugin import OptimizePlugin

from conftest import RecordingBundleBuilder


def test_unsupported_runtime_registers_no_hooks(make_service) -> None:
    plugin = OptimizePlugin(make_service(runtime="python3.9"), builder=RecordingBundleBuilder())
    assert plugin.hooks == {}
    assert asyncio.run(plugin.trigger("before:package:createDeploymentArtifacts")) is None


def test_supported_runtime_registers_package_and_invoke_hooks(make_service) -> None:
    plugin = OptimizePlugin(make_service(runtime="nodejs12.x"), builder=RecordingBundleBuilder())
    assert set(plugin.hooks) == {
        "before:package:function:package",
        "after:package:function:package",
        "before:package:createDeploymentArtifacts",
        "after:package:createDeploymentArtifacts",
        "before:invoke:local:invoke",
        "after:invoke:local:invoke",
    }


def test_hooks_build_then_clean(make_service) -> None:
    builder = RecordingBundleBuilder()
    service = make_service(runtime="nodejs12.x")
    plugin = OptimizePlugin(service, builder=builder)

    asyncio.run(plugin.trigger("before:package:createDeploymentArtifacts"))
    assert service.get_unit("A").handler == "_optimize/A/handlers/a.main"
    assert (service.service_root / "_optimize" / "A" / "handlers" / "a.js").exists()

    preset_env = builder.calls[0][1].presets[-1]
    assert preset_env == ("@babel/preset-env", {"targets": {"node": "12"}})

    asyncio.run(plugin.trigger("after:package:createDeploymentArtifacts"))
    assert not (service.service_root / "_optimize").exists()
