"""Command line entry point: resolve one fetcher against a saved page."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from bs4 import Tag

from viewfetch.config import FetchConfig, load_config
from viewfetch.engine import Engine
from viewfetch.errors import ViewFetchError
from viewfetch.fetcher import Fetcher
from viewfetch.render import load_page
from viewfetch.results import ComponentSet


def parse_arg(value: str) -> Any:
    """Function arguments are JSON when they parse as JSON, strings otherwise."""
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return value


def to_jsonable(result: Any) -> Any:
    if isinstance(result, list):
        return [to_jsonable(item) for item in result]
    if isinstance(result, Tag):
        return {
            "tag": result.name,
            "attrs": {
                k: " ".join(v) if isinstance(v, list) else v for k, v in result.attrs.items()
            },
            "text": result.get_text(),
        }
    if isinstance(result, ComponentSet):
        return {"components": [i.name for i in result]}
    return result


def describe(result: Any, indent: int = 0) -> str:
    pad = "  " * indent
    if isinstance(result, list):
        if not result:
            return f"{pad}[]"
        lines = [f"{pad}["]
        lines.extend(describe(item, indent + 1) for item in result)
        lines.append(f"{pad}]")
        return "\n".join(lines)
    if isinstance(result, str):
        return f"{pad}{result!r}"
    return f"{pad}{result}"


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Resolve a selector against a saved page snapshot"
    )
    parser.add_argument(
        "page",
        type=Path,
        help="Page snapshot (.json) or structural-only page (.html)",
    )
    parser.add_argument("selector", help="Selector, e.g. '@Alpha .alpha-div'")
    parser.add_argument(
        "-m", "--multi",
        action="store_true",
        help="Return every match instead of the first",
    )
    parser.add_argument(
        "--at",
        type=int,
        default=None,
        help="Pick one match of a multi query (negative counts from the end)",
    )
    parser.add_argument(
        "-f", "--fn",
        default=None,
        help="Terminal function to apply to the result (text, count, ...)",
    )
    parser.add_argument(
        "-a", "--arg",
        action="append",
        default=[],
        help="Argument for --fn; may be repeated",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="JSON file with engine configuration",
    )
    parser.add_argument(
        "-j", "--json",
        action="store_true",
        help="Output as JSON",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log fetch tracing to stderr",
    )

    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    if not args.page.exists():
        print(f"Error: Page not found: {args.page}", file=sys.stderr)
        return 1

    try:
        config = load_config(args.config) if args.config else FetchConfig()
        engine = Engine(load_page(args.page), config)
        fetcher = Fetcher.from_root(args.selector, multi=args.multi, at=args.at)
        if args.fn:
            fetcher = fetcher.call(args.fn, *(parse_arg(a) for a in args.arg))
        result = engine.fetch(fetcher)
    except (ViewFetchError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(to_jsonable(result), indent=2))
    else:
        print(describe(result))
    return 0


if __name__ == "__main__":
    sys.exit(main())
