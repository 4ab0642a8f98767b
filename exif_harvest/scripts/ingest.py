from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import List, Optional

from exif_harvest.services.config import Settings, configure_logging, get_settings
from exif_harvest.services.errors import ExifHarvestError
from exif_harvest.services.pipeline import run_ingest


logger = logging.getLogger("exif_harvest.ingest")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="exif-harvest", description="Download catalog images and store their EXIF in Redis")
    parser.add_argument("--catalog-url", help="S3 bucket listing to ingest")
    parser.add_argument("--blob-base-url", help="Base URL for image objects (defaults to the catalog URL)")
    parser.add_argument("--image-store", type=Path, help="Local directory for downloaded images")
    parser.add_argument("--workers", type=int, help="Number of concurrent downloads")
    parser.add_argument("--redis-url", help="Redis connection URL")
    parser.add_argument("--key-prefix", help="Prefix for Redis record keys (default i:)")
    parser.add_argument("--status-dir", type=Path, help="Directory for job status files")
    parser.add_argument("--timeout", dest="request_timeout", type=float, help="Per-request timeout in seconds")
    parser.add_argument("--fail-fast", action="store_true", default=None, help="Abort on EXIF parse or Redis write failures")
    parser.add_argument("--log-level", help="Logging level (default INFO)")
    return parser


def settings_from_args(args: argparse.Namespace, base: Settings) -> Settings:
    overrides = {k: v for k, v in vars(args).items() if v is not None}
    if not overrides:
        return base
    return Settings(**{**base.model_dump(), **overrides})


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = settings_from_args(args, get_settings())
    configure_logging(settings.log_level)

    try:
        summary = run_ingest(settings)
    except ExifHarvestError as e:
        logger.error("ingest aborted: %s", e)
        return 1
    print(json.dumps(summary.to_dict(), indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
