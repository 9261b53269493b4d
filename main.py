#!/usr/bin/env python3
"""
RentAdmin -- command-line exports from the rental management API.

Usage:
  python main.py export payments --format xlsx
  python main.py export tenants --format csv --output tenants.csv
  python main.py export activity-logs --format pdf
  python main.py receipt 64f0c2a9e1b2c3d4e5f60718

Authentication:
  RENTADMIN_TOKEN   Bearer token issued by the rental API. Used unless
                    --email and --password are given, in which case the CLI
                    logs in first.

API_URL, REQUEST_TIMEOUT and BUSINESS_NAME are read from the same settings as
the web console (environment or .env).
"""

import argparse
import getpass
import sys
from pathlib import Path
from typing import Any, Optional

import requests
from pydantic import ValidationError

from auth.session import AuthSession
from auth.tokens import MemoryTokenStore
from client.http import APIClient, APIError
from client.resources import RentalAPI
from core.config import get_settings
from core.export import EXPORT_FORMATS, ExportFile, activity_log_rows, build_export, payment_rows, tenant_rows
from core.receipt import payment_receipt_pdf, receipt_filename

EXPORT_TARGETS = ("payments", "tenants", "activity-logs")

# Upstream caps activity log pages at this size.
_ACTIVITY_LOG_LIMIT = 200


def _records(body: Any, key: Optional[str] = None) -> list:
    if isinstance(body, list):
        return body
    if key and isinstance(body, dict) and isinstance(body.get(key), list):
        return body[key]
    return []


def _connect(args: argparse.Namespace) -> Optional[RentalAPI]:
    """An authenticated RentalAPI, or None after printing why not."""
    settings = get_settings()
    store = MemoryTokenStore(settings.rentadmin_token or None)
    api = RentalAPI(APIClient(settings.api_url, requests.Session(), store, settings.request_timeout))

    if args.email:
        password = args.password or getpass.getpass("Password: ")
        result = AuthSession(api, store).login(args.email, password)
        if not result.success:
            print(f"  [!] Login failed: {result.message}", file=sys.stderr)
            return None
    elif not store.get():
        print("  [!] Set RENTADMIN_TOKEN or pass --email/--password.", file=sys.stderr)
        return None
    return api


def _export(api: RentalAPI, target: str, fmt: str) -> ExportFile:
    if target == "payments":
        rows = payment_rows(_records(api.payments.list()))
        return build_export(rows, fmt, "payments", "Payments Report")
    if target == "tenants":
        rows = tenant_rows(_records(api.tenants.list()))
        return build_export(rows, fmt, "tenants", "Tenants Report")
    logs = _records(api.activity_logs.list({"page": 1, "limit": _ACTIVITY_LOG_LIMIT}), "logs")
    return build_export(activity_log_rows(logs), fmt, "activity-logs", "Activity Logs")


def _write(path: Path, content: bytes) -> None:
    path.write_bytes(content)
    print(f"  Wrote {path} ({len(content)} bytes)")


def main() -> int:
    parser = argparse.ArgumentParser(
        prog="rentadmin",
        description="Export data and receipts from the rental management API.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  RENTADMIN_TOKEN=... python main.py export payments --format xlsx
  python main.py --email admin@example.com export tenants --format csv
  python main.py receipt 64f0c2a9e1b2c3d4e5f60718 --output receipt.pdf
        """,
    )
    parser.add_argument("--email", help="Log in with this email instead of RENTADMIN_TOKEN")
    parser.add_argument("--password", help="Password for --email (prompted when omitted)")
    commands = parser.add_subparsers(dest="command", required=True)

    export = commands.add_parser("export", help="Export a table as CSV, XLSX or PDF")
    export.add_argument("target", choices=EXPORT_TARGETS)
    export.add_argument("--format", choices=EXPORT_FORMATS, default="csv", dest="fmt")
    export.add_argument("--output", metavar="PATH", help="Output file (default: generated name in cwd)")

    receipt = commands.add_parser("receipt", help="Download a payment receipt PDF")
    receipt.add_argument("payment_id", metavar="PAYMENT_ID")
    receipt.add_argument("--output", metavar="PATH", help="Output file (default: generated name in cwd)")

    args = parser.parse_args()

    try:
        settings = get_settings()
    except ValidationError as e:
        for error in e.errors():
            print(f"  [!] Invalid configuration: {error['msg']}", file=sys.stderr)
        return 2

    api = _connect(args)
    if api is None:
        return 1

    try:
        if args.command == "export":
            exported = _export(api, args.target, args.fmt)
            _write(Path(args.output or exported.filename), exported.content)
        else:
            payment = api.payments.get(args.payment_id)
            if not isinstance(payment, dict):
                print(f"  [!] Payment {args.payment_id} not found.", file=sys.stderr)
                return 1
            content = payment_receipt_pdf(payment, settings.business_name)
            _write(Path(args.output or receipt_filename(payment)), content)
    except APIError as e:
        print(f"  [!] {e.user_message('Request failed')}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
