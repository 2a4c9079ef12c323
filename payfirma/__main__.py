#!/usr/bin/env python3
"""
Command-line checks for the Payfirma SDK: python -m payfirma

Usage:
    python -m payfirma version             # Print the SDK version
    python -m payfirma check [--sandbox]   # Authenticate with PAYFIRMA_* credentials
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys

from payfirma.__version__ import __version__


async def _check(sandbox: bool, as_json: bool) -> int:
    from payfirma.client import PayfirmaClient
    from payfirma.config import PayfirmaConfig
    from payfirma.errors import PayfirmaError

    try:
        config = PayfirmaConfig.from_env(sandbox=True if sandbox else None)
        async with PayfirmaClient(config) as client:
            await client.initialize()
            status = client.get_auth_status()
            credentials = client.auth.get_credentials()
    except PayfirmaError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    report = {
        "environment": config.environment.name,
        "merchant_id": credentials.merchant_id if credentials else None,
        "scope": credentials.scope if credentials else None,
        **status.to_dict(),
    }
    if as_json:
        print(json.dumps(report, indent=2))
    else:
        for key, value in report.items():
            print(f"{key}: {value}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="payfirma", description="Payfirma SDK utilities")
    sub = parser.add_subparsers(dest="command")
    sub.add_parser("version", help="print the SDK version")
    check = sub.add_parser("check", help="obtain a token and print the auth status")
    check.add_argument("--sandbox", action="store_true", help="use the sandbox hosts")
    check.add_argument("--json", action="store_true", help="print JSON")
    check.add_argument("--log-level", default=None, help="enable SDK logging at this level")

    args = parser.parse_args(argv)
    if args.command == "version":
        print(__version__)
        return 0
    if args.command == "check":
        if args.log_level:
            from payfirma.logging_config import configure_logging

            configure_logging(level=args.log_level, json_output=False)
        return asyncio.run(_check(args.sandbox, args.json))
    parser.print_help()
    return 2


if __name__ == "__main__":
    sys.exit(main())
