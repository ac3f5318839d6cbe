#!/usr/bin/env python3
"""
EstateMap - Command Line Interface

Usage:
    estatemap serve --host 0.0.0.0 --port 5000
    estatemap serve --reload
    estatemap init-db
"""
import argparse
import asyncio
import sys

import uvicorn

from estatemap.core.config import settings
from estatemap.core.errors import PersistenceError
from estatemap.core.logging import configure_logging
from estatemap.services import UserDirectory
from estatemap.storage import create_persistence


def cmd_serve(args):
    """Run the HTTP + WebSocket server"""
    uvicorn.run(
        "estatemap.app:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=settings.LOG_LEVEL.lower(),
    )


async def _init_db():
    storage = create_persistence(settings)
    await storage.connect()
    try:
        await storage.init_schema()
        admin = await UserDirectory(storage).ensure_default_admin(
            settings.ADMIN_EMAIL, settings.ADMIN_PASSWORD, settings.ADMIN_NAME
        )
    finally:
        await storage.close()
    return admin


def cmd_init_db(args):
    """Create tables and seed the default admin"""
    configure_logging(settings.LOG_LEVEL)
    try:
        admin = asyncio.run(_init_db())
    except PersistenceError as e:
        print(f"✗ Error: {e.message}")
        sys.exit(1)

    print("✓ Database ready")
    if admin is not None:
        print(f"✓ Created admin user: {admin.email}")


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="estatemap",
        description="EstateMap shared property map server",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the server")
    serve_parser.add_argument("--host", default=settings.HOST, help="Bind address")
    serve_parser.add_argument("--port", type=int, default=settings.PORT, help="Bind port")
    serve_parser.add_argument("--reload", action="store_true", help="Reload on code changes")

    # Init-db command
    subparsers.add_parser("init-db", help="Create tables and the default admin")

    args = parser.parse_args(argv)

    if args.command == "serve":
        cmd_serve(args)
    elif args.command == "init-db":
        cmd_init_db(args)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
