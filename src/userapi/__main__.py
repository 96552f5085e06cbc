"""
=============================================================================
CLI ENTRY POINT
=============================================================================

    python -m userapi                     # everything from the environment
    userapi --port 9000 --workers 8
    userapi --static ./public --log-level DEBUG

Startup order:

    1. ServerConfig / DatabaseConfig from the environment (+ CLI flags)
    2. connect to PostgreSQL, retrying DB_CONNECT_RETRIES times
    3. create the users table if it is missing
    4. serve until SIGTERM / SIGINT

Any failure in 1-3 logs at CRITICAL and exits with status 1.

=============================================================================
"""

import argparse
import logging
import os
import sys
from typing import List, Optional

from .app import create_app
from .config import DatabaseConfig, ServerConfig
from .errors import ConfigError, StorageError
from .server import setup_logging
from .storage import PostgresUserStorage, connect_pool


logger = logging.getLogger("userapi")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="userapi",
        description="User CRUD service with a PostgreSQL backend",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Database settings come from DB_HOST, DB_PORT, DB_USER, DB_PASSWORD
and DB_NAME. Flags below override the matching APP_* variables.
        """,
    )

    parser.add_argument("--host", "-H", help="Host to bind to (APP_HOST, default 0.0.0.0)")
    parser.add_argument("--port", "-p", type=int, help="Port to listen on (APP_PORT, default 8080)")
    parser.add_argument("--workers", "-w", type=int, help="Maximum worker threads (APP_WORKERS)")
    parser.add_argument("--static", "-s", help="Frontend directory (STATIC_DIR, default ./static)")
    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (LOG_LEVEL, default INFO)",
    )
    parser.add_argument("--version", "-v", action="version", version="userapi 1.0.0")

    return parser.parse_args(argv)


def build_server_config(args: argparse.Namespace) -> ServerConfig:
    """
    Raises:
        ConfigError: On malformed variables or invalid values.
    """
    config = ServerConfig.from_env()

    if args.host:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if args.workers is not None:
        config.max_workers = args.workers
        config.min_workers = min(config.min_workers, args.workers)
    if args.static:
        config.static_dir = args.static
    if args.log_level:
        config.log_level = args.log_level

    config.validate()
    return config


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level or os.environ.get("LOG_LEVEL") or "INFO")

    try:
        server_config = build_server_config(args)
        db_config = DatabaseConfig.from_env()
    except ConfigError as e:
        logger.critical(f"Invalid configuration: {e}")
        return 1

    logger.debug(f"Database settings: {db_config!r}")
    try:
        pool = connect_pool(db_config)
    except StorageError as e:
        logger.critical(str(e))
        return 1

    storage = PostgresUserStorage(pool)
    try:
        storage.ensure_schema()
        create_app(storage, server_config).run()
    except StorageError as e:
        logger.critical(f"Database setup failed: {e}")
        return 1
    except OSError as e:
        logger.critical(f"Server failed: {e}")
        return 1
    finally:
        storage.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
