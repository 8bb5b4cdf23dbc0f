#!/usr/bin/env python3
"""DocAnswer server entry point."""

import argparse

import uvicorn
from dotenv import load_dotenv

load_dotenv()

LOG_LEVELS = ["critical", "error", "warning", "info", "debug"]


def check_config() -> int:
    """Print the answer provider and any configuration problems."""
    from config.config import Config

    config = Config()
    problems = config.validate()
    print(f"Answers: {config.get_provider_info()}")
    print(f"Index:   {config.ALGOLIA_INDEX_NAME or '(per request)'}")
    for problem in problems:
        print(f"  - {problem}")
    return 1 if problems else 0


def main() -> None:
    parser = argparse.ArgumentParser(description="DocAnswer API server")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    parser.add_argument("--port", type=int, default=8000, help="Port to bind to")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload")
    parser.add_argument("--log-level", default="info", choices=LOG_LEVELS)
    parser.add_argument("--check-config", action="store_true", help="Validate configuration and exit")
    args = parser.parse_args()

    if args.check_config:
        raise SystemExit(check_config())

    from utils.logger import LoggerConfig

    LoggerConfig.set_level(args.log_level)
    uvicorn.run(
        "server.app:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level,
    )


if __name__ == "__main__":
    main()
