"""Command line entry for mongorest."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional, Sequence

import uvicorn

from mongorest.api.main import create_app
from mongorest.core.config import get_settings

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Serve MongoDB collections as REST resources")
    parser.add_argument("--schema-dir", type=Path, help="Directory of <collection>.json schema files")
    parser.add_argument("--host", help="Interface to bind (default: HOST setting)")
    parser.add_argument("--port", type=int, help="Port to bind (default: PORT setting)")
    parser.add_argument("--log-level", help="Logging level (default: LOG_LEVEL setting)")
    return parser


def run_server(argv: Optional[Sequence[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    config = get_settings()
    overrides = {}
    if args.schema_dir is not None:
        overrides["SCHEMA_DIR"] = args.schema_dir
    if args.log_level:
        overrides["LOG_LEVEL"] = args.log_level.upper()
    if overrides:
        config = config.model_copy(update=overrides)

    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if config.SCHEMA_DIR is None:
        logger.warning("No schema directory configured; only /health will be served")

    app = create_app(config=config)
    uvicorn.run(app, host=args.host or config.HOST, port=args.port or config.PORT, log_level=config.LOG_LEVEL.lower())


def main() -> None:
    run_server()


if __name__ == "__main__":
    main()
