"""Command-line interface: list tools or run one tool and print its JSON result."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from repolens.service import RepoLensService, create_service
from repolens.utils.config import load_config
from repolens.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


def _parse_arguments(raw: str) -> dict[str, Any]:
    try:
        parsed = json.loads(raw or "{}")
    except json.JSONDecodeError as e:
        raise SystemExit(f"Tool arguments must be a JSON object: {e}")
    if not isinstance(parsed, dict):
        raise SystemExit(f"Tool arguments must be a JSON object, got {type(parsed).__name__}")
    return parsed


async def run_tool(service: RepoLensService, tool: str, arguments: dict[str, Any]) -> dict[str, Any]:
    try:
        result = await service.execute(tool, arguments)
    finally:
        await service.aclose()
    return result.to_payload()


def print_tools(service: RepoLensService) -> None:
    print("Available tools:")
    for tool in service.list_tools():
        print(f"  {tool['name']}: {tool['description']}")
        for pname, spec in tool["parameters"].items():
            flag = " (optional)" if spec["optional"] else ""
            print(f"      {pname} [{spec['type']}]{flag}: {spec['description']}")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="repolens-cli", description="Run repolens tools from the shell")
    parser.add_argument("--config", help="Path to repolens.yaml", default=None)
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("list", help="List available tools")
    run = sub.add_parser("run", help="Execute a tool")
    run.add_argument("tool", help="Tool name, e.g. get_repo_stats")
    run.add_argument("arguments", nargs="?", default="{}", help="Tool arguments as a JSON object")
    args = parser.parse_args(argv)

    load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")
    config = load_config(args.config)
    setup_logging(level=config["logging"]["level"], json_logs=bool(config["logging"]["json"]))
    service = create_service(config)

    if args.command == "list":
        print_tools(service)
        return 0

    payload = asyncio.run(run_tool(service, args.tool, _parse_arguments(args.arguments)))
    print(json.dumps(payload, indent=2, default=str))
    return 0 if payload["success"] else 1


def run_cli() -> None:
    """Entry point for the repolens-cli script."""
    sys.exit(main())


if __name__ == "__main__":
    run_cli()
