import logging
import sys

import structlog
from fastapi import Request
from structlog.stdlib import ProcessorFormatter

from src.utils.settings.app import AppSettings


def get_client_ip(request: Request, trusted_proxies: int | None = None) -> str:
    """Address of the peer that reached the outermost trusted proxy.

    Each proxy appends the address it saw to ``X-Forwarded-For``, so only the
    last ``trusted_proxies`` entries were written by infrastructure we run;
    anything further left is whatever the sender put there.
    """
    if trusted_proxies is None:
        trusted_proxies = AppSettings().TRUSTED_PROXY_COUNT

    if trusted_proxies > 0:
        forwarded_for = request.headers.get("x-forwarded-for")
        if forwarded_for:
            hops = [hop.strip() for hop in forwarded_for.split(",") if hop.strip()]
            if hops:
                return hops[-min(trusted_proxies, len(hops))]
        real_ip = request.headers.get("x-real-ip")
        if real_ip:
            return real_ip.strip()

    if request.client and request.client.host:
        return request.client.host
    return "127.0.0.1"


def add_request_info(
    logger: structlog.BoundLogger, method_name: str, event_dict: dict
) -> dict:
    context_vars = structlog.contextvars.get_contextvars()
    for key in ("request_id", "ip_address"):
        value = context_vars.get(key)
        if value and key not in event_dict:
            event_dict[key] = value
    return event_dict


SENSITIVE_FIELDS = frozenset(
    {"authorization", "access_token", "signature", "secret", "webhook_secret"}
)
IMAGE_FIELDS = frozenset({"image_base64", "input_image_base64"})


def redact_sensitive_fields(
    logger: structlog.BoundLogger, method_name: str, event_dict: dict
) -> dict:
    """Mask credentials and replace inline images with their size."""
    for key, value in event_dict.items():
        if key.lower() in SENSITIVE_FIELDS and value:
            event_dict[key] = "***"
        elif key in IMAGE_FIELDS and isinstance(value, str):
            event_dict[key] = f"<{len(value)} base64 chars>"
    return event_dict


def setup_logging(is_production: bool = False, debug: bool = False):
    """Setup structlog configuration with different formats for dev/prod."""
    log_level = logging.DEBUG if debug else logging.INFO

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    shared_processors: list = [
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        add_request_info,
        redact_sensitive_fields,
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    root_logger = logging.getLogger()
    root_logger.handlers = []

    if is_production:
        formatter = ProcessorFormatter(
            processor=structlog.processors.JSONRenderer(sort_keys=False),
        )
    else:
        formatter = ProcessorFormatter(
            processor=structlog.dev.ConsoleRenderer(colors=True, pad_event=8),
        )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    logging.getLogger("uvicorn").handlers = []
    logging.getLogger("uvicorn.access").handlers = []

    # SDK clients log full request bodies at INFO
    for noisy in ("openai", "httpx", "urllib3", "aiohttp.access"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logger = structlog.get_logger()
    return logger


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a logger instance with optional name."""
    return structlog.get_logger(name)
