"""Command-line entry point that serves the API under uvicorn."""

import argparse
import logging
from collections.abc import Sequence

import uvicorn

from src.config import get_settings

logger = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    settings = get_settings()
    parser = argparse.ArgumentParser(description=f"{settings.app_name} users API server")
    parser.add_argument("--host", default=settings.host, help="Bind address")
    parser.add_argument("--port", type=int, default=settings.port, help="Listen port")
    parser.add_argument(
        "--workers",
        type=int,
        default=settings.workers,
        help=f"Number of worker processes (default: {settings.workers})",
    )
    parser.add_argument("--log-level", default=settings.log_level, help="Logging level")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> None:
    args = _parse_args(argv)
    if args.workers < 1:
        raise SystemExit("--workers must be at least 1")

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(process)d] %(name)s: %(message)s",
    )
    logger.info(f"Starting on http://{args.host}:{args.port} with {args.workers} worker(s)")

    # Each worker process imports the app and opens its own database connection
    uvicorn.run(
        "src.main:app",
        host=args.host,
        port=args.port,
        workers=args.workers,
        log_level=args.log_level.lower(),
    )


if __name__ == "__main__":
    main()
