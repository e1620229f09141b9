"""
Run the API server: ``python -m livewall``.
"""

from __future__ import annotations

import argparse
import logging

import uvicorn

from livewall.config import get_settings

logger = logging.getLogger(__name__)


def main() -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Live wall API server")
    parser.add_argument("--host", default=settings.host, help="Interface to bind")
    parser.add_argument("--port", type=int, default=settings.port, help="Port to listen on")
    parser.add_argument("--reload", action="store_true", help="Reload on code changes")
    args = parser.parse_args()

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    ssl_options = {}
    if settings.use_https:
        if not settings.ssl_certfile or not settings.ssl_keyfile:
            parser.error("USE_HTTPS requires SSL_CERTFILE and SSL_KEYFILE")
        ssl_options = {
            "ssl_certfile": settings.ssl_certfile,
            "ssl_keyfile": settings.ssl_keyfile,
        }

    scheme = "https" if settings.use_https else "http"
    logger.info("Application is running on: %s://%s:%d", scheme, args.host, args.port)
    uvicorn.run(
        "livewall.app:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=settings.log_level.lower(),
        **ssl_options,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
