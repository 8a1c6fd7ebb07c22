"""Provision and clean up the e2e tenants and users around a test run.

This module serves as a CLI wrapper around e2e_support.core services.
"""
from __future__ import annotations
import argparse
import json
import logging
import sys
from pathlib import Path

SCRIPT_DIR = Path(__file__).parent
PROJECT_ROOT = SCRIPT_DIR.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from e2e_support.config.settings import load_settings
from e2e_support.core.identity import AuthHelper, IdentityError, tenant_id_claim
from e2e_support.core.provisioning import provision
from e2e_support.core.teardown import teardown


def main(argv: list[str] | None = None) -> None:
    """Command-line entry point."""
    parser = argparse.ArgumentParser(description="E2E tenant/user provisioning helper")
    parser.add_argument("--identity-url", default=None, help="Override IDENTITY_API_URL")
    parser.add_argument("--auth-dir", default=None, help="Directory holding the setup manifest")
    parser.add_argument("-v", "--verbose", action="store_true")

    sub = parser.add_subparsers(dest="cmd")

    sub.add_parser("setup", help="Create or converge the e2e tenants and users")
    sub.add_parser("teardown", help="Delete the entities recorded by the last setup")

    sc = sub.add_parser("claims", help="Login and print the tenant claim of the access token")
    sc.add_argument("--username", required=True)
    sc.add_argument("--password", required=True)

    args = parser.parse_args(argv)

    if not args.cmd:
        parser.print_help()
        return

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_settings()
    if args.identity_url:
        config.identity_api_url = args.identity_url.rstrip("/")
    if args.auth_dir:
        config.auth_dir = Path(args.auth_dir)

    if args.cmd == "setup":
        try:
            result = provision(config)
        except IdentityError as e:
            print(f"[setup] Error: {e}", file=sys.stderr)
            sys.exit(1)
        if result is None:
            print("[setup] Skipped", file=sys.stderr)
            return
        print(f"[setup] Ensured {len(result.tenants)} tenant(s) and {len(result.users)} user(s)", file=sys.stderr)
    elif args.cmd == "teardown":
        report = teardown(config)
        if report is None:
            print("[teardown] Skipped", file=sys.stderr)
            return
        print(
            f"[teardown] Deleted {len(report.deleted_users)} user(s), {len(report.deleted_tenants)} tenant(s); "
            f"failed {len(report.failed_users) + len(report.failed_tenants)}",
            file=sys.stderr,
        )
    elif args.cmd == "claims":
        auth = AuthHelper(config.identity_api_url, timeout=config.http_timeout)
        try:
            auth.login_via_api(args.username, args.password)
            claims = auth.token_claims()
        except IdentityError as e:
            print(f"[claims] Error: {e}", file=sys.stderr)
            sys.exit(1)
        print(json.dumps({"username": args.username, "tenantId": tenant_id_claim(claims)}))
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
