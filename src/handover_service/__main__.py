"""Command-line entry point: ``python -m handover_service``."""

from __future__ import annotations

import argparse
import os
import sys

from handover_service.config import HandoverConfig
from handover_service.utils.logging import setup_logging


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Handover link service")
    parser.add_argument("--host", default=os.getenv("HANDOVER_HOST", "127.0.0.1"))
    parser.add_argument("--port", type=int, default=int(os.getenv("HANDOVER_PORT", "8080")))
    parser.add_argument("--log-level", default=None, help="Overrides HANDOVER_LOG_LEVEL")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    config = HandoverConfig.from_env()
    level = (args.log_level or config.log_level).upper()
    logger = setup_logging(level)

    import uvicorn

    from handover_service.servers.main import create_app

    app = create_app(config)
    logger.info("Serving handover service on %s:%s", args.host, args.port)
    uvicorn.run(
        app,
        host=args.host,
        port=args.port,
        log_level=level.lower(),
        proxy_headers=True,
        forwarded_allow_ips="*",
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
