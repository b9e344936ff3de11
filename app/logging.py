"""
Logging for the shop API: one stdout stream shared by uvicorn and the ``shop`` /
``app.*`` loggers. Outbound integrations (courier check, storage backends,
Conversions API) report failures with ``logger.warning`` and never raise into a
request; their HTTP client libraries are held at WARNING so request bodies and
signed URLs stay out of the log.
"""
import logging
import sys

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

SHOP_LOGGERS = ("shop", "app")
SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")
QUIET_LOGGERS = ("botocore", "boto3", "s3transfer", "urllib3", "multipart")


def resolve_level(level: int | str | None) -> int:
    """'debug' / 'INFO' / 20 -> logging level; anything unknown -> INFO."""
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level or "").strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(level: int | str | None = logging.INFO, format_string: str = DEFAULT_FORMAT) -> int:
    level = resolve_level(level)
    logging.basicConfig(level=level, format=format_string, stream=sys.stdout, force=True)
    for name in SERVER_LOGGERS + SHOP_LOGGERS:
        logging.getLogger(name).setLevel(level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
    return level
