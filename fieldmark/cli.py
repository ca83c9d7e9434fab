"""Command line interface for managing extraction templates."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Awaitable, Callable, Sequence

from fieldmark.configuration import (
    DEFAULT_STORAGE_ROOT_NAME,
    ConfigurationError,
    FieldmarkConfig,
    default_config,
    render_default_config,
    resolve_config,
)
from fieldmark.errors import FieldmarkError
from fieldmark.observability.logging import configure_logging
from fieldmark.templates.matcher import is_universal
from fieldmark.templates.service import TemplateManager, create_manager
from fieldmark.templates.validator import validate
from fieldmark.types import Template

Command = Callable[[TemplateManager, argparse.Namespace], Awaitable[int]]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fieldmark",
        description="Manage extraction templates and match them against page URLs",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to a fieldmark config.py that defines FIELDMARK_CONFIG",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Override the configured log level (DEBUG, INFO, WARNING, ...)",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    list_parser = commands.add_parser("list", help="List stored templates")
    list_parser.add_argument("--search", default=None, help="Filter by name, URL or field name")

    show_parser = commands.add_parser("show", help="Print one template as JSON")
    show_parser.add_argument("template_id")

    match_parser = commands.add_parser("match", help="List templates that apply to a URL")
    match_parser.add_argument("url")

    validate_parser = commands.add_parser("validate", help="Validate templates in a JSON file")
    validate_parser.add_argument("path", help="A template object, a list, or an export payload")

    export_parser = commands.add_parser("export", help="Export all templates")
    export_parser.add_argument("-o", "--output", default=None, help="Write to a file instead of stdout")

    import_parser = commands.add_parser("import", help="Import templates from an export file")
    import_parser.add_argument("path")

    delete_parser = commands.add_parser("delete", help="Delete a template")
    delete_parser.add_argument("template_id")

    commands.add_parser("stats", help="Show template and storage statistics")
    repair_parser = commands.add_parser(
        "repair-index", help="Rebuild the metadata index from stored templates"
    )
    repair_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report differences without rewriting the index",
    )

    init_parser = commands.add_parser("init-config", help="Generate a config.py with default paths")
    init_parser.add_argument(
        "output",
        nargs="?",
        default="config.py",
        help="Destination file path (default: config.py)",
    )
    init_parser.add_argument(
        "--root",
        type=str,
        default=None,
        help=(
            "Root storage directory for generated config "
            f"(default: <cwd>/{DEFAULT_STORAGE_ROOT_NAME})"
        ),
    )
    init_parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite the destination file if it already exists",
    )
    return parser


def _describe(template: Template) -> str:
    scope = "all pages" if is_universal(template) else template.url
    return f"{template.id}  {template.name}  [{scope}]  {len(template.fields)} field(s)"


async def _run_list(manager: TemplateManager, args: argparse.Namespace) -> int:
    if args.search:
        templates = await manager.search(args.search)
    else:
        templates = await manager.repository.get_all()
    for template in templates:
        print(_describe(template))
    if not templates:
        print("No templates")
    return 0


async def _run_show(manager: TemplateManager, args: argparse.Namespace) -> int:
    template = await manager.repository.load(args.template_id)
    if template is None:
        print(f"Error: template {args.template_id} not found", file=sys.stderr)
        return 1
    print(json.dumps(template.to_dict(), indent=2, ensure_ascii=False))
    return 0


async def _run_match(manager: TemplateManager, args: argparse.Namespace) -> int:
    templates = await manager.templates_for_url(args.url)
    for template in templates:
        print(_describe(template))
    if not templates:
        print(f"No templates match {args.url}")
    return 0


def _run_validate(path: Path) -> int:
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict) and isinstance(data.get("templates"), list):
        items = data["templates"]
    elif isinstance(data, list):
        items = data
    else:
        items = [data]

    exit_code = 0
    for position, item in enumerate(items, start=1):
        result = validate(item if isinstance(item, dict) else {})
        label = item.get("name") if isinstance(item, dict) and item.get("name") else f"#{position}"
        if result.valid:
            print(f"{label}: ok")
            continue
        exit_code = 1
        for message in result.errors:
            print(f"{label}: {message}")
    return exit_code


async def _run_export(manager: TemplateManager, args: argparse.Namespace) -> int:
    payload = await manager.repository.export_all()
    if args.output:
        Path(args.output).expanduser().write_text(payload, encoding="utf-8")
        print(f"Exported templates to {args.output}")
    else:
        print(payload)
    return 0


async def _run_import(manager: TemplateManager, args: argparse.Namespace) -> int:
    payload = Path(args.path).expanduser().read_text(encoding="utf-8")
    result = await manager.repository.import_all(payload)
    print(f"Imported templates: {result.imported}")
    for message in result.messages:
        print(f"Failed: {message}", file=sys.stderr)
    return 0 if result.ok else 2


async def _run_delete(manager: TemplateManager, args: argparse.Namespace) -> int:
    if await manager.repository.load(args.template_id) is None:
        print(f"Error: template {args.template_id} not found", file=sys.stderr)
        return 1
    await manager.repository.delete(args.template_id)
    print(f"Deleted {args.template_id}")
    return 0


async def _run_stats(manager: TemplateManager, args: argparse.Namespace) -> int:
    template_stats = await manager.template_stats()
    storage_stats = await manager.repository.storage_stats()
    print(f"Templates: {template_stats.total_templates}")
    print(f"  URL-specific: {template_stats.templates_with_specific_url}")
    print(f"  Universal: {template_stats.universal_templates}")
    print(f"Fields: {template_stats.total_fields} "
          f"(avg {template_stats.average_fields_per_template} per template)")
    if template_stats.last_updated:
        print(f"Last updated: {template_stats.last_updated}")
    print(
        f"Storage: {storage_stats.bytes_in_use_formatted} "
        f"({storage_stats.percentage_used}% of {storage_stats.quota_bytes} bytes)"
    )
    return 0


async def _run_repair(manager: TemplateManager, args: argparse.Namespace) -> int:
    if args.dry_run:
        report = await manager.repository.index_drift()
        if not report.drifted:
            print("Metadata index is consistent")
            return 0
        print(
            f"Metadata index drift (not repaired): {len(report.added)} missing, "
            f"{len(report.removed)} dangling, {len(report.refreshed)} stale"
        )
        return 0
    report = await manager.repository.repair_index()
    if not report.drifted:
        print("Metadata index is consistent")
        return 0
    print(
        f"Repaired metadata index: {len(report.added)} added, "
        f"{len(report.removed)} removed, {len(report.refreshed)} refreshed"
    )
    return 0


COMMANDS: dict[str, Command] = {
    "list": _run_list,
    "show": _run_show,
    "match": _run_match,
    "export": _run_export,
    "import": _run_import,
    "delete": _run_delete,
    "stats": _run_stats,
    "repair-index": _run_repair,
}


def _run_init_config(args: argparse.Namespace) -> int:
    output_path = Path(args.output).expanduser()
    if output_path.exists() and not args.force:
        print(
            f"Error: {output_path} already exists. Use --force to overwrite.",
            file=sys.stderr,
        )
        return 1
    storage_root = (
        Path(args.root).expanduser()
        if args.root
        else Path.cwd() / DEFAULT_STORAGE_ROOT_NAME
    )
    output_path.write_text(render_default_config(storage_root))
    default_config(storage_root).storage.ensure_directories()
    print(f"Wrote default configuration to {output_path}")
    return 0


async def _run_with_manager(config: FieldmarkConfig, command: Command, args: argparse.Namespace) -> int:
    manager = await create_manager(config)
    try:
        return await command(manager, args)
    finally:
        await manager.close()


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    if args.command == "init-config":
        return _run_init_config(args)

    try:
        config = resolve_config(args.config)
    except ConfigurationError as exc:
        raise SystemExit(str(exc)) from exc
    configure_logging(args.log_level or config.observability.log_level)

    if args.command == "validate":
        return _run_validate(Path(args.path).expanduser())

    try:
        return asyncio.run(_run_with_manager(config, COMMANDS[args.command], args))
    except FieldmarkError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
