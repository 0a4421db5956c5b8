"""CLI entrypoint for mirroring one website to local disk."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
import shutil
import sys
from typing import Any

if __package__ in {None, ""}:
    repo_root = Path(__file__).resolve().parents[1]
    if str(repo_root) not in sys.path:
        sys.path.insert(0, str(repo_root))

from sitemirror.crawler import (
    MirrorConfig,
    OutputLogger,
    Pipeline,
    normalize_extensions,
    setup_logging,
)
from sitemirror.crawler.config import read_config_payload


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Recursively mirror a single website to local disk.",
    )

    parser.add_argument(
        "base_url",
        nargs="?",
        default=None,
        help="Absolute URL to start mirroring from. Overrides the config file value.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to JSON/YAML mirror config.",
    )
    parser.add_argument(
        "--output_dir",
        type=Path,
        default=None,
        help="Root directory that mirrors the site's URL paths.",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Parallel downloads per round (default: logical CPU count).",
    )
    parser.add_argument(
        "--page_extensions",
        type=str,
        default=None,
        help="Comma separated extensions parsed as HTML pages, e.g. 'html,htm'.",
    )
    parser.add_argument(
        "--stylesheet_extensions",
        type=str,
        default=None,
        help="Comma separated extensions treated as stylesheets, e.g. 'css'.",
    )

    parser.add_argument(
        "--retry_on_timeout",
        dest="retry_on_timeout",
        action="store_true",
        default=None,
        help="Requeue URLs whose download timed out.",
    )
    parser.add_argument(
        "--max_timeout_retries",
        type=int,
        default=None,
        help="Give up on a URL after this many timeout requeues (default: unbounded).",
    )
    parser.add_argument("--timeout_seconds", type=float, default=None)
    parser.add_argument("--user_agent", type=str, default=None)

    parser.add_argument(
        "--clean",
        action="store_true",
        help="Delete the output directory before mirroring.",
    )
    parser.add_argument(
        "-y",
        "--yes",
        action="store_true",
        help="Do not ask for confirmation before starting.",
    )

    parser.add_argument(
        "--print_stats_json",
        action="store_true",
        help="Print full stats JSON in stdout after run.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Also show insignificant messages (skipped links, duplicates).",
    )
    parser.add_argument(
        "--show_level",
        action="store_true",
        help="Include the severity name in each log line.",
    )
    parser.add_argument(
        "--no_color",
        action="store_true",
        help="Print console log lines without severity colours.",
    )
    parser.add_argument(
        "--async_logging",
        action="store_true",
        help="Emit log records from a background listener thread.",
    )
    parser.add_argument(
        "--log_file",
        type=Path,
        default=None,
        help="Also write log lines to this file (keep it outside the output directory).",
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> MirrorConfig:
    payload: dict[str, Any] = {}
    if args.config is not None:
        payload = read_config_payload(args.config)

    if args.base_url:
        payload["base_url"] = args.base_url
    if not payload.get("base_url"):
        raise ValueError("No base URL provided. Pass it as an argument or via --config.")

    if args.output_dir is not None:
        payload["output_dir"] = str(args.output_dir)
    if args.workers is not None:
        payload["workers"] = args.workers
    if args.page_extensions is not None:
        payload["page_extensions"] = sorted(normalize_extensions(args.page_extensions))
    if args.stylesheet_extensions is not None:
        payload["stylesheet_extensions"] = sorted(normalize_extensions(args.stylesheet_extensions))

    if args.retry_on_timeout is not None:
        payload["retry_on_timeout"] = args.retry_on_timeout
    if args.max_timeout_retries is not None:
        payload["max_timeout_retries"] = (
            None if args.max_timeout_retries < 0 else args.max_timeout_retries
        )
    if args.timeout_seconds is not None:
        payload["timeout_seconds"] = args.timeout_seconds
    if args.user_agent is not None:
        payload["user_agent"] = args.user_agent

    return MirrorConfig.from_dict(payload)


def confirm(config: MirrorConfig, *, clean: bool) -> bool:
    print("\nThe following parameters will be used:\n")
    print(f"   Base URL:               {config.base_url}")
    print(f"   Output Directory:       {config.output_dir}")
    print(f"   Workers:                {config.workers}")
    print(f"   Page Extensions:        {','.join(sorted(config.page_extensions))}")
    print(f"   Stylesheet Extensions:  {','.join(sorted(config.stylesheet_extensions))}")
    print(f"   Retry On Timeout:       {config.retry_on_timeout}")
    if clean:
        print("\nThe output directory will be deleted first.")
    else:
        print("\nExisting files in the output directory will be overwritten.")

    try:
        answer = input("\nAre you sure you want to continue? [Y/N]: ")
    except EOFError:
        return False
    return answer.strip().lower() == "y"


def clean_output_dir(output_dir: Path) -> None:
    if output_dir.is_dir():
        shutil.rmtree(output_dir)


def print_summary(result: dict[str, Any], *, print_stats_json: bool) -> None:
    stats = result.get("stats", {})

    print("\n=== Mirror Summary ===")
    print(f"base_url: {result.get('base_url')}")
    print(f"output_dir: {result.get('output_dir')}")
    for key in ["downloads", "warning_count", "error_count", "cycles", "elapsed_seconds"]:
        if key in result:
            print(f"{key}: {result[key]}")

    if print_stats_json:
        print("\n--- Full Stats JSON ---")
        print(json.dumps(stats, indent=2, sort_keys=True))


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    listener = setup_logging(
        verbose=args.verbose,
        show_level=args.show_level,
        asynchronous=args.async_logging,
        log_file=args.log_file,
        color=not args.no_color,
    )

    try:
        return _run(args)
    finally:
        if listener is not None:
            listener.stop()


def _run(args: argparse.Namespace) -> int:
    try:
        config = build_config(args)
    except Exception as exc:
        logging.error("Failed to build config: %s", exc)
        return 2

    if not args.yes and not confirm(config, clean=args.clean):
        print("\nOperation cancelled by user.")
        return 0

    try:
        if args.clean:
            clean_output_dir(Path(config.output_dir))
        pipeline = Pipeline(config, logger=OutputLogger())
        result = pipeline.run()
    except KeyboardInterrupt:
        logging.error("Interrupted by user")
        return 130
    except OSError as exc:
        logging.error("Output directory unusable: %s", exc)
        return 2
    except Exception:
        logging.exception("Mirror run failed")
        return 1

    print_summary(result, print_stats_json=args.print_stats_json)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
