from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Sequence

from sales_collector.config import Config
from sales_collector.dashboard.errors import CollectionError, error_kind
from sales_collector.dashboard.json_logger import get_logger


def _run_server(config: Config) -> int:
    import uvicorn

    from sales_collector.api.app import create_app

    application = create_app(config)
    print(f"[app] Serving on http://{config.host}:{config.port}", flush=True)
    uvicorn.run(application, host=config.host, port=config.port)
    return 0


def _run_collect(config: Config, args: argparse.Namespace) -> int:
    from sales_collector.dashboard.orchestrator import CollectionOrchestrator

    logger = get_logger(run_id=args.run_id, log_file_path=config.json_log_file or None)
    orchestrator = CollectionOrchestrator(config, logger=logger)
    try:
        result = asyncio.run(orchestrator.collect(run_id=args.run_id))
    except Exception as exc:
        print(json.dumps({"status": "falha", "erro": str(exc), "tipo": error_kind(exc)}, ensure_ascii=False))
        return 1
    finally:
        logger.close()
    print(json.dumps({"status": "sucesso", "dados": result.to_wire()}, ensure_ascii=False, indent=2))
    return 0


def _run_login(config: Config) -> int:
    from sales_collector.dashboard.first_login import first_login_headed

    try:
        first_login_headed(config)
    except CollectionError as exc:
        print(f"Error saving session: {exc}", file=sys.stderr)
        return 1
    return 0


def _run_latest(config: Config) -> int:
    from sales_collector.dashboard.history_store import HistoryStore

    store = HistoryStore(config.history_file, retention=config.history_retention)
    try:
        entry = store.latest()
    except CollectionError as exc:
        print(json.dumps({"status": "falha", "erro": str(exc)}, ensure_ascii=False))
        return 1
    print(json.dumps({"status": "sucesso", "dados": entry.to_wire()}, ensure_ascii=False, indent=2))
    return 0


def _run_history(config: Config, args: argparse.Namespace) -> int:
    from sales_collector.dashboard.history_store import HistoryStore

    store = HistoryStore(
        config.history_file,
        retention=config.history_retention,
        default_days=config.history_default_days,
    )
    window = store.query_recent(args.days)
    print(json.dumps({"status": "sucesso", **window.to_wire()}, ensure_ascii=False, indent=2))
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sales_collector", description="Store sales collector")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("server", help="Serve the HTTP API (POST /api/coleta, GET /api/dados, GET /api/historico)")

    collect_parser = subparsers.add_parser("collect", help="Run one collection and print the result")
    collect_parser.add_argument("--run-id", dest="run_id", type=str, default=None, help="Override generated run id")

    subparsers.add_parser("login", help="Open a headed browser, log in by hand and save the session")
    subparsers.add_parser("latest", help="Print the most recent collection")

    history_parser = subparsers.add_parser("history", help="Print collections from the last N days")
    history_parser.add_argument("--days", dest="days", type=str, default=None, help="Window in days (default 7)")

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    parsed = parser.parse_args(list(argv) if argv is not None else sys.argv[1:])
    config = Config.load_from_env()

    if parsed.command == "server":
        return _run_server(config)
    if parsed.command == "collect":
        return _run_collect(config, parsed)
    if parsed.command == "login":
        return _run_login(config)
    if parsed.command == "latest":
        return _run_latest(config)
    if parsed.command == "history":
        return _run_history(config, parsed)

    parser.error("Unknown command")
    return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
