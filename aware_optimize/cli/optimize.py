"""Command-line helpers for optimizing serverless functions."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import shlex
from pathlib import Path
from typing import Dict, Mapping, Optional, Sequence

from aware_optimize.bundle.builder import SubprocessBundleBuilder
from aware_optimize.config.resolver import resolve
from aware_optimize.errors import OptimizeError
from aware_optimize.host import ServiceDefinition, dump_service, load_service
from aware_optimize.pipeline import PipelineController


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    try:
        if args.command == "build":
            return _handle_build(args)
        if args.command == "clean":
            return _handle_clean(args)
        if args.command == "config":
            if args.config_command == "show":
                return _handle_config_show(args)
            parser.error("config command requires a subcommand")
    except OptimizeError as exc:
        _print_json({"error": str(exc), "unit": exc.unit, "type": type(exc).__name__})
        return 1

    parser.error(f"Unknown command '{args.command}'")
    return 1


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="aware-optimize",
        description="Bundle, transpile and minify serverless functions.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    build = subparsers.add_parser("build", help="Build optimized function artifacts.")
    _add_service_arguments(build)
    build.add_argument("--function", help="Only optimize this function.")
    build.add_argument(
        "--bundler-command",
        help="Bundler command reading a JSON request on stdin (default: node driver.js).",
    )
    build.add_argument("--timeout", type=float, help="Seconds allowed per bundle build.")
    build.add_argument("--write-service", help="Write the rewritten service definition as YAML.")

    clean = subparsers.add_parser("clean", help="Remove the optimize output folder unless debug is set.")
    _add_service_arguments(clean)

    config = subparsers.add_parser("config", help="Configuration utilities.")
    config_sub = config.add_subparsers(dest="config_command", required=True)
    show = config_sub.add_parser("show", help="Show effective options per function.")
    _add_service_arguments(show)
    show.add_argument("--function", help="Only show this function.")

    return parser


def _add_service_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--service-file", default="serverless.yml")
    parser.add_argument("--service-root", help="Defaults to the service file's directory.")


def _handle_build(args: argparse.Namespace) -> int:
    service = _load(args, function=args.function)
    command = shlex.split(args.bundler_command) if args.bundler_command else None
    builder = SubprocessBundleBuilder(command, cwd=service.service_root, timeout=args.timeout)
    controller = PipelineController(service, builder)

    report = asyncio.run(controller.before_build())

    if args.write_service:
        dump_service(service, _resolve_path(args.write_service, service.service_root))

    payload = report.to_dict()
    payload["logs"] = [
        f"{result.name}: {result.status.value}" for result in report.results
    ]
    _print_json(payload)
    return 0


def _handle_clean(args: argparse.Namespace) -> int:
    service = _load(args)
    controller = PipelineController(service)
    asyncio.run(controller.after_build())
    settings = controller.service_settings()
    _print_json(
        {
            "output_root": str(controller.paths.output_root(settings.prefix)),
            "kept": settings.debug,
        }
    )
    return 0


def _handle_config_show(args: argparse.Namespace) -> int:
    service = _load(args, function=args.function)
    controller = PipelineController(service)
    defaults, system = controller.service_layers()

    functions: Dict[str, Mapping[str, object]] = {}
    for unit in controller.units_in_scope():
        if unit.opt_out:
            functions[unit.key] = {"optimize": False}
            continue
        settings = resolve(defaults, system, unit.overrides)
        functions[unit.key] = {
            "name": unit.name,
            "output": controller.paths.layout(settings.prefix, unit.name, unit.handler).output_folder,
            "options": settings.model_dump(mode="json", by_alias=True),
            "overrides": unit.overrides.to_raw(),
        }

    _print_json(
        {
            "service_root": str(service.service_root),
            "runtime": service.runtime,
            "service": resolve(defaults, system).model_dump(mode="json", by_alias=True),
            "functions": functions,
        }
    )
    return 0


def _load(args: argparse.Namespace, *, function: Optional[str] = None) -> ServiceDefinition:
    service_file = Path(args.service_file).resolve()
    service_root = Path(args.service_root).resolve() if args.service_root else None
    return load_service(service_file, service_root=service_root, function=function)


def _resolve_path(value: str, root: Path) -> Path:
    path = Path(value)
    if not path.is_absolute():
        path = root / path
    return path.resolve()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
    )


def _print_json(payload: Mapping[str, object]) -> None:
    print(json.dumps(payload, indent=2, default=str))


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
