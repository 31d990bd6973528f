#!/usr/bin/env python3
"""Open a page, dismiss its popup, and print what happened."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

# Ensure project root is importable
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from popdismiss import ActionKind, ActionOutcome, PopDismissError, SuiteConfig, SuiteSession
from popdismiss.logger import configure_logging


def parse_args(argv: list[str]) -> argparse.Namespace:
    config = SuiteConfig.from_env()
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("url", help="page to open, absolute or relative to the base URL")
    parser.add_argument("--base-url", default=config.base_url)
    parser.add_argument("--locator", default=config.popup_locator)
    parser.add_argument("--interval-ms", type=int, default=config.poll_interval_ms)
    parser.add_argument("--timeout-ms", type=int, default=config.poll_timeout_ms or 10000)
    parser.add_argument(
        "--action",
        choices=[kind.value for kind in ActionKind],
        default=config.action.value,
    )
    parser.add_argument("--headed", action="store_true", help="show the browser window")
    parser.add_argument(
        "--screenshot",
        metavar="PATH",
        help="save a screenshot here when the run fails",
    )
    return parser.parse_args(argv)


async def run(args: argparse.Namespace) -> int:
    config = SuiteConfig.from_env()
    config.base_url = args.base_url
    config.popup_locator = args.locator
    config.poll_interval_ms = args.interval_ms
    config.poll_timeout_ms = args.timeout_ms
    config.action = ActionKind(args.action)
    config.headless = not args.headed
    configure_logging(config.log_level, json_output=config.log_json)

    async with SuiteSession(config) as session:
        await session.visit(args.url)
        session.arm_popup_dismissal()
        try:
            result = await session.settle()
        except PopDismissError as exc:
            print(f"✗ {exc}", file=sys.stderr)
            if args.screenshot:
                await session.browser.screenshot(args.screenshot)
                print(f"  screenshot: {args.screenshot}", file=sys.stderr)
            return 1

    print(result.model_dump_json(indent=2))
    return 0 if result.outcome == ActionOutcome.FOUND_AND_ACTED else 2


def main() -> None:
    sys.exit(asyncio.run(run(parse_args(sys.argv[1:]))))


if __name__ == "__main__":
    main()
