#!/usr/bin/env python3
"""
CLI tool for mapping n8n workflow JSON files

Usage:
    workflow-mapper map <workflow.json> [--strict] [--summary] [--credentials <file.json>]
    workflow-mapper stats <workflow.json>
    workflow-mapper node-types
    workflow-mapper --help

Exit codes: 0 mapping done, 1 mapping failed, 2 unreadable input.
"""

import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from core.config import Settings
from core.errors import WorkflowParseError
from core.logging_config import configure_logging_from_settings
from .node_mapper import create_node_mapper
from .utils import calculate_complexity_score, estimate_conversion_time, generate_conversion_summary

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_BAD_INPUT = 2


class InputError(Exception):
    """Input file missing or not valid JSON"""


def load_json_file(file_path: str) -> Dict[str, Any]:
    """Load and parse a JSON file"""
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except FileNotFoundError as e:
        raise InputError(f"File '{file_path}' not found") from e
    except json.JSONDecodeError as e:
        raise InputError(f"Invalid JSON in '{file_path}': {e}") from e


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="workflow-mapper",
        description="Map n8n workflows to code-generation-ready data",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  workflow-mapper map my_workflow.json
  workflow-mapper map my_workflow.json --strict --summary
  workflow-mapper stats my_workflow.json
  workflow-mapper node-types
        """
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    map_parser = subparsers.add_parser("map", help="Map a workflow and print the result")
    map_parser.add_argument("file", help="Workflow JSON file")
    map_parser.add_argument(
        "--strict", "-s",
        action="store_true",
        default=None,
        help="Fail on unsupported node types or structural errors"
    )
    map_parser.add_argument(
        "--summary",
        action="store_true",
        help="Print the markdown conversion summary instead of JSON"
    )
    map_parser.add_argument(
        "--credentials", "-c",
        help="JSON file of credential data keyed by credential id or name"
    )

    stats_parser = subparsers.add_parser("stats", help="Print support statistics for a workflow")
    stats_parser.add_argument("file", help="Workflow JSON file")

    subparsers.add_parser("node-types", help="List supported node types")
    return parser


def run_map(args, settings: Settings) -> int:
    document = load_json_file(args.file)
    credentials = load_json_file(args.credentials) if args.credentials else None

    mapper = create_node_mapper(settings)
    result = mapper.map_workflow(document, strict=args.strict, credentials=credentials)

    if args.summary:
        print(generate_conversion_summary(result))
    else:
        print(json.dumps(result.model_dump(mode="json"), indent=2))
    return EXIT_FAILED if result.failed else EXIT_OK


def run_stats(args, settings: Settings) -> int:
    document = load_json_file(args.file)
    mapper = create_node_mapper(settings)
    try:
        stats = mapper.get_workflow_mapping_stats(document)
    except WorkflowParseError as e:
        raise InputError(e.message) from e

    stats["complexity_score"] = calculate_complexity_score(document)
    stats["estimated_minutes"] = estimate_conversion_time(document, mapper.registry)
    print(json.dumps(stats, indent=2))
    return EXIT_OK


def run_node_types(args, settings: Settings) -> int:
    mapper = create_node_mapper(settings)
    node_types = [
        {
            "type": definition.type,
            "display_name": definition.display_name,
            "category": definition.category.value,
        }
        for definition in mapper.registry.list_all()
    ]
    print(json.dumps(node_types, indent=2))
    return EXIT_OK


COMMANDS = {
    "map": run_map,
    "stats": run_stats,
    "node-types": run_node_types,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI function"""
    args = build_parser().parse_args(argv)

    settings = Settings()
    configure_logging_from_settings(settings)

    try:
        return COMMANDS[args.command](args, settings)
    except InputError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_BAD_INPUT


if __name__ == "__main__":
    sys.exit(main())
