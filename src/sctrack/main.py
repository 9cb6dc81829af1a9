from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from sctrack.application.container import build_container
from sctrack.application.contract import OPERATIONS
from sctrack.config import EngineConfig, get_app_paths
from sctrack.domain.context import TransactionContext
from sctrack.domain.errors import AppError
from sctrack.logging_config import setup_logging
from sctrack.repositories.couch_ledger import CouchLedger

log = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sctrack", description="Supply chain ledger engine")
    parser.add_argument("--db", type=Path, help="SQLite ledger file (default: per-user data dir)")
    parser.add_argument("--couch-url", help="CouchDB base URL; replaces the SQLite ledger")
    parser.add_argument("--couch-db", default="supplychain", help="CouchDB database name")
    parser.add_argument("--logs-dir", type=Path, help="Directory for log files")
    sub = parser.add_subparsers(dest="command", required=True)

    invoke = sub.add_parser("invoke", help="Run one contract operation")
    invoke.add_argument("operation", choices=sorted(OPERATIONS))
    invoke.add_argument("args", nargs="*")
    invoke.add_argument("--tx-id", help="Transaction id (mutating operations)")
    invoke.add_argument("--timestamp", help="Transaction timestamp, ISO-8601 (mutating operations)")

    export = sub.add_parser("export-analytics", help="Write the analytics snapshot to an .xlsx file")
    export.add_argument("path", type=Path)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    paths = None
    if args.logs_dir is None or (args.db is None and not args.couch_url):
        paths = get_app_paths()
    setup_logging(args.logs_dir or paths.logs_dir, level=logging.INFO)

    config = EngineConfig.from_env()
    try:
        if args.couch_url:
            ledger = CouchLedger(args.couch_url, args.couch_db)
            ledger.init_db()
            container = build_container(ledger=ledger, config=config)
        else:
            container = build_container(args.db or paths.db_path, config=config)

        if args.command == "export-analytics":
            target = container.reporting.export_analytics_excel(args.path)
            result = {"path": str(target)}
        else:
            ctx = None
            if args.tx_id or args.timestamp:
                ctx = TransactionContext(tx_id=args.tx_id or "", timestamp=args.timestamp or "")
            result = container.contract.invoke(args.operation, args.args, ctx=ctx)
    except AppError as e:
        log.warning("command_failed command=%s kind=%s error=%s", args.command, e.kind, e)
        print(json.dumps({"error": e.kind, "message": str(e)}, ensure_ascii=False), file=sys.stderr)
        return 1

    print(json.dumps(result, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
