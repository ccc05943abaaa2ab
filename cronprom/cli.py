from __future__ import annotations

"""Command line entry point.

Usage:
  cronprom serve --config-path config.yml
  cronprom push --url http://127.0.0.1:8080/api/v1/push --name job_failures_total \\
      --type counter --value 1 --label job_name=backup --label environment=prod

``CRONPROM_CONFIG_PATH`` and ``CRONPROM_URL`` can stand in for the flags.
"""

import argparse
import asyncio
import sys
from collections.abc import Callable

import httpx

from cronprom.config.metrics_config import load_config, parse_address
from cronprom.config.settings import Settings, get_settings
from cronprom.errors import CronpromError
from cronprom.services.logging import configure_logging, get_logger
from cronprom.version import build_string


logger = get_logger()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cronprom",
        description="Collect metrics pushed by cron jobs and expose them to Prometheus.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
        help="Log level (default: LOG_LEVEL or INFO).",
    )
    parser.add_argument("--version", action="store_true", help="Print version and exit.")

    sub = parser.add_subparsers(dest="command")

    p_serve = sub.add_parser("serve", help="Serve the push API and /metrics")
    p_serve.add_argument("--config-path", default=None, help="Metrics config file (env CRONPROM_CONFIG_PATH).")

    p_push = sub.add_parser("push", help="Push one metric update to a running server")
    p_push.add_argument("--url", default=None, help="Push endpoint URL (env CRONPROM_URL).")
    p_push.add_argument("--name", required=True, help="Name of the metric to update")
    p_push.add_argument("--type", required=True, help="Type of metric (gauge, counter, histogram, summary)")
    p_push.add_argument("--value", required=True, type=float, help="Value to update the metric with")
    p_push.add_argument(
        "--label",
        action="append",
        default=[],
        help="Label in the format key=value (can be specified multiple times)",
    )

    return parser


def _cmd_serve(settings: Settings, args: argparse.Namespace) -> int:
    from cronprom.main import create_app
    from cronprom.services.collector import MetricCollector
    from cronprom.services.registry import BuildInfo

    config_path = args.config_path or settings.config_path
    if not config_path:
        print("serve requires --config-path or CRONPROM_CONFIG_PATH", file=sys.stderr)
        return 2

    config = load_config(config_path)
    build_info = BuildInfo(version=settings.build_version, commit=settings.build_commit, date=settings.build_date)
    collector = MetricCollector.from_config(config, build_info=build_info)
    host, port = parse_address(config.web.address)

    import uvicorn

    logger.info("starting_http_server", addr=config.web.address, config_path=str(config_path))
    uvicorn.run(create_app(collector), host=host, port=port, log_config=None)
    return 0


def _cmd_push(settings: Settings, args: argparse.Namespace) -> int:
    from cronprom.services.push_client import build_update, push_update

    url = args.url or settings.push_url
    if not url:
        print("push requires --url or CRONPROM_URL", file=sys.stderr)
        return 2

    update = build_update(args.name, args.type, args.value, args.label)
    asyncio.run(push_update(url, update, timeout=settings.push_timeout_seconds))
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = get_settings()

    if args.version:
        print(f"cronprom {build_string(settings.build_version, settings.build_commit, settings.build_date)}")
        return 0

    configure_logging(args.log_level or settings.log_level, json_output=settings.log_json)

    if not args.command:
        parser.print_help()
        return 2

    dispatch: dict[str, Callable[[Settings, argparse.Namespace], int]] = {
        "serve": _cmd_serve,
        "push": _cmd_push,
    }

    try:
        return int(dispatch[args.command](settings, args))
    except (CronpromError, httpx.HTTPError) as exc:
        logger.error("command_failed", command=args.command, error=str(exc))
        print(f"cronprom {args.command}: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
