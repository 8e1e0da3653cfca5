"""Module entry point: serve a bucket over HTTP."""
import argparse
import logging
import sys

from botocore.exceptions import BotoCoreError
import uvicorn

from .server import build_app, build_store
from .services import StoreError
from .settings import LOG_LEVELS, SettingsStorage

LOGGER = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="s3-index",
        description="Browse an S3 bucket as a directory tree over HTTP.",
    )
    parser.add_argument("--bucket", help="bucket to serve")
    parser.add_argument("--region", help="bucket region")
    parser.add_argument("--endpoint", dest="endpoint_url", help="custom S3-compatible endpoint URL")
    parser.add_argument("--profile", help="saved connection profile to use for credentials")
    parser.add_argument("--host", help="address to listen on (default 127.0.0.1)")
    parser.add_argument("--port", type=int, help="port to listen on (default 3030)")
    parser.add_argument(
        "--presign-expiry",
        dest="presign_expiry_seconds",
        type=int,
        metavar="SECONDS",
        help="validity of redirect URLs (default 86400)",
    )
    parser.add_argument(
        "--no-dir-fallback",
        dest="directory_fallback",
        action="store_const",
        const=False,
        help="answer 404 instead of listing when a path without trailing / is not an object",
    )
    parser.add_argument("--log-level", choices=LOG_LEVELS, help="log level (default info)")
    parser.add_argument("--settings", help="settings file (default ~/.s3_index_settings.json)")
    return parser.parse_args(argv)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(levelname)s %(message)s",
        stream=sys.stdout,
        force=True,
    )


def main(argv=None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level or "info")
    overrides = {key: value for key, value in vars(args).items() if key != "settings"}
    settings = SettingsStorage(args.settings).load().merged(**overrides)
    if settings.log_level != (args.log_level or "info"):
        configure_logging(settings.log_level)
    if not settings.bucket:
        LOGGER.error("no bucket configured; pass --bucket or set it in the settings file")
        return 2

    try:
        store = build_store(settings)
        store.check_bucket()
    except (StoreError, BotoCoreError, ValueError) as exc:
        LOGGER.error("%s", exc)
        return 1

    app = build_app(settings, store)
    LOGGER.info("serving bucket '%s' on http://%s:%d/", settings.bucket, settings.host, settings.port)
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level,
        access_log=settings.access_log,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
