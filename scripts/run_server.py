"""
Skin Viewer server launcher

Usage:
    python scripts/run_server.py [--host HOST] [--port PORT] [--workers N] [--log-level INFO]

The port defaults to $PORT, then to the configured port (3000).
Running more than one worker requires the Redis catalog backend
(SKINVIEW_CATALOG_BACKEND=redis), since the in-memory catalog is per process.
"""

import argparse
import logging
import os
import sys
sys.path.append(".")

import uvicorn

from core.config import get_settings

logger = logging.getLogger(__name__)


def main():
    settings = get_settings()

    parser = argparse.ArgumentParser(description="Run the Skin Viewer API server")
    parser.add_argument("--host", default=settings.host, help="Bind address")
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.environ.get("PORT", settings.port)),
        help="Bind port (default: $PORT or configured port)",
    )
    parser.add_argument("--workers", type=int, default=1, help="Number of uvicorn workers")
    parser.add_argument("--reload", action="store_true", help="Auto-reload on code changes")
    parser.add_argument(
        "--log-level",
        default=settings.logging.level,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
        help="Logging level",
    )
    args = parser.parse_args()

    logging.basicConfig(level=getattr(logging, args.log_level))

    if args.workers > 1 and settings.catalog_backend == "memory":
        logger.warning(
            f"Running {args.workers} workers with the in-memory catalog: each worker keeps its own list"
        )

    logger.info(f"Server running on http://{args.host}:{args.port}")
    uvicorn.run(
        "api.main:app",
        host=args.host,
        port=args.port,
        workers=args.workers,
        reload=args.reload,
        log_level=args.log_level.lower(),
    )


if __name__ == "__main__":
    main()
