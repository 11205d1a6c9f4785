#!/usr/bin/env python
"""Discover fields over the current selection and apply markup labels."""

from __future__ import annotations

import argparse
import json
import sys
from contextlib import AsyncExitStack
from pathlib import Path
from typing import Any, Iterable

import anyio

from markup_builder.core import (
    MarkupBuilderError,
    MarkupConfig,
    Settings,
    configure_logging,
    get_settings,
)
from markup_builder.markup import FileSummarySink
from markup_builder.provider import InMemoryWorkspaceProvider, MCPWorkspaceProvider
from markup_builder.workflow import MarkupWorkflow


def _parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--records",
        type=Path,
        help="Offline JSON snapshot to read instead of the MCP workspace provider",
    )
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    subparsers = parser.add_subparsers(dest="command", required=True)

    fields_parser = subparsers.add_parser("fields", help="List fields discovered over the selection")
    fields_parser.add_argument(
        "--all",
        action="store_true",
        help="Include denylisted and empty fields instead of the display view",
    )

    apply_parser = subparsers.add_parser("apply", help="Compose and apply markups")
    apply_parser.add_argument(
        "--fields",
        required=True,
        help="Comma-separated field keys in label order (e.g. Pset1.Name,Pset1.Weight)",
    )
    apply_parser.add_argument("--prefix", help="Text prepended to every label")
    apply_parser.add_argument("--separator", help="Separator between field values")
    apply_parser.add_argument(
        "--line-break",
        action="store_true",
        help="Put each field value on its own line",
    )
    apply_parser.add_argument("--position", choices=["center", "top"], default="center")
    apply_parser.add_argument(
        "--summary-out",
        type=Path,
        help="Write the condensed summary to this file instead of stdout",
    )
    return parser.parse_args(list(argv) if argv is not None else None)


def _split_fields(raw: str) -> list[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


def _build_config(args: argparse.Namespace, workflow: MarkupWorkflow) -> MarkupConfig:
    defaults = workflow.default_config()
    return MarkupConfig(
        prefix=args.prefix if args.prefix is not None else defaults.prefix,
        separator=args.separator if args.separator is not None else defaults.separator,
        line_break=args.line_break,
        position=args.position,
    )


def _field_payload(field: Any) -> dict[str, Any]:
    return {
        "key": field.key,
        "display_name": field.display_name,
        "frequency": field.frequency,
        "samples": list(field.value_samples),
    }


async def _run(args: argparse.Namespace, settings: Settings) -> int:
    async with AsyncExitStack() as stack:
        if args.records:
            provider: Any = InMemoryWorkspaceProvider.from_file(args.records)
        else:
            provider = await stack.enter_async_context(MCPWorkspaceProvider(settings))
        workflow = MarkupWorkflow(provider, settings)
        report = await workflow.discover_fields()
        print(report.message, file=sys.stderr)

        if args.command == "fields":
            fields = report.fields if args.all else report.display_fields
            print(json.dumps([_field_payload(item) for item in fields], indent=2, ensure_ascii=False))
            return 0 if report.records else 1

        result = await workflow.apply_markups(
            _split_fields(args.fields),
            _build_config(args, workflow),
            report=report,
        )
        print(result.message, file=sys.stderr)
        if result.apply is None:
            return 1
        if args.summary_out:
            workflow.export(result, FileSummarySink(args.summary_out))
        elif result.summary:
            print(result.summary)
        return 0


def main(argv: Iterable[str] | None = None) -> int:
    args = _parse_args(argv)
    settings = get_settings()
    configure_logging(args.log_level, settings=settings)
    try:
        return anyio.run(_run, args, settings)
    except MarkupBuilderError as exc:
        raise SystemExit(f"run_markup: {exc}") from exc


if __name__ == "__main__":
    try:
        raise SystemExit(main())
    except KeyboardInterrupt:  # pragma: no cover
        sys.exit(130)
