"""
TradeScope CLI — entry point for all operations.

Usage:
    tradescope serve           # Start the API server
    tradescope migrate         # Apply database migrations
    tradescope status          # Show configuration and connectivity
    tradescope gen-secret      # Print a fresh master encryption secret
    tradescope version         # Show version
"""

from __future__ import annotations

import argparse
import secrets
import sys


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="tradescope",
        description="TradeScope — chart analysis journal with per-user encrypted API keys.",
    )
    parser.add_argument("--version", action="store_true", help="Show version and exit")

    subparsers = parser.add_subparsers(dest="command")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Start the API server")
    serve_parser.add_argument("--host", default=None, help="Bind address (default: TRADESCOPE_HOST)")
    serve_parser.add_argument("--port", type=int, default=None, help="Port (default: TRADESCOPE_PORT)")

    # migrate
    migrate_parser = subparsers.add_parser("migrate", help="Apply database migrations")
    migrate_parser.add_argument("--dry-run", action="store_true", help="Print SQL without executing")
    migrate_parser.add_argument("--status", action="store_true", help="Show applied vs pending")

    subparsers.add_parser("status", help="Show configuration and connectivity")
    subparsers.add_parser("gen-secret", help="Print a new random master encryption secret")
    subparsers.add_parser("version", help="Show version")

    args = parser.parse_args(argv)

    if args.version or args.command == "version":
        from tradescope import __version__

        print(f"tradescope {__version__}")
        return 0

    if args.command == "serve":
        return _cmd_serve(args)
    elif args.command == "migrate":
        return _cmd_migrate(args)
    elif args.command == "status":
        return _cmd_status()
    elif args.command == "gen-secret":
        print(secrets.token_urlsafe(48))
        return 0
    else:
        parser.print_help()
        return 0


def _cmd_serve(args: argparse.Namespace) -> int:
    try:
        import uvicorn
    except ImportError:
        print("Error: uvicorn is required. Install with: pip install tradescope")
        return 1

    from tradescope.config import get_config
    from tradescope.log import configure_logging

    cfg = get_config()
    configure_logging(cfg.log_level)
    host = args.host or cfg.host
    port = args.port or cfg.port

    print(f"Starting TradeScope API on {host}:{port}...")
    uvicorn.run("tradescope.api.app:app", host=host, port=port, log_config=None)
    return 0


def _cmd_migrate(args: argparse.Namespace) -> int:
    from tradescope.db import migrate
    from tradescope.errors import StoreUnavailableError

    try:
        if args.status:
            for state in migrate.status():
                at = state.applied_at.strftime("%Y-%m-%d %H:%M") if state.applied_at else ""
                print(f"{state.version:<8} {state.filename:<40} {state.status:<8} {at}")
            return 0
        migrate.apply(dry_run=args.dry_run)
    except StoreUnavailableError:
        print("Error: cannot reach PostgreSQL. Check TRADESCOPE_DB_* environment variables.")
        return 1
    except Exception as e:
        print(f"Error: Migration failed: {type(e).__name__}: {e}")
        return 1
    return 0


def _cmd_status() -> int:
    from tradescope import __version__
    from tradescope.config import get_config

    cfg = get_config()
    print(f"TradeScope v{__version__}")
    print()

    def flag(ok: bool) -> str:
        return "set" if ok else "MISSING"

    print(f"  Encryption secret: {flag(cfg.vault.configured)}")
    print(f"  Supabase URL:      {cfg.auth.supabase_url or 'MISSING'}")
    print(f"  Supabase key:      {flag(bool(cfg.auth.service_role_key))}")
    print(f"  Resend key:        {flag(cfg.email.configured)} (optional)")
    print(f"  Rate limit:        {cfg.rate_limit.max_requests}/{cfg.rate_limit.window_seconds:.0f}s "
          f"({cfg.rate_limit.backend})")

    print(f"  Store:             {cfg.store_backend}")
    if cfg.store_backend == "postgres":
        print(f"  PostgreSQL:        {cfg.db.host or '<socket>'}:{cfg.db.port}/{cfg.db.name}")
        try:
            import psycopg2

            conn = psycopg2.connect(**cfg.db.dict)
            with conn.cursor() as cur:
                cur.execute("SELECT to_regclass('public.user_preferences')")
                table = cur.fetchone()[0]
            conn.close()
            print(f"                     Connected — user_preferences {'present' if table else 'MISSING (run tradescope migrate)'}")
        except Exception as e:
            print(f"                     UNREACHABLE — {type(e).__name__}")

    missing = cfg.missing()
    print()
    if missing:
        print(f"  Missing required settings: {', '.join(missing)}")
        return 1
    print("  All required settings present.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
