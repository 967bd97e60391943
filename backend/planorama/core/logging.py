"""
Structured logging configuration using structlog.
Outputs JSON in production, pretty-printed in development.

Request IDs are merged in from contextvars bound by the request middleware;
RSVP handlers add the event and responding identity the same way, so every
line of an admission carries them. Invitation secrets never reach a log line:
they are bearer credentials and appear in guest-facing URL paths.
"""

import logging
import re
import sys
from typing import Optional

import structlog
from planorama.core.config import get_settings

# /tokens/token/<secret>, /rsvps/token/<secret>[/status]
_TOKEN_PATH = re.compile(r"(/token/)[^/]+")
REDACTED = "***"


def redact_invitation_tokens(logger, method_name: str, event_dict: dict) -> dict:
    path = event_dict.get("path")
    if isinstance(path, str) and "/token/" in path:
        event_dict["path"] = _TOKEN_PATH.sub(rf"\g<1>{REDACTED}", path)
    if "invitation_token" in event_dict:
        event_dict["invitation_token"] = REDACTED
    return event_dict


def bind_rsvp_context(event_id: int, user_id: Optional[int] = None, token_id: Optional[int] = None) -> None:
    """Tag the rest of this request's log lines with the RSVP being handled."""
    identity = {"user_id": user_id} if user_id is not None else {"token_id": token_id}
    structlog.contextvars.bind_contextvars(
        rsvp_event_id=event_id,
        rsvp_path="user" if user_id is not None else "token",
        **identity,
    )


def setup_logging() -> None:
    settings = get_settings()

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        redact_invitation_tokens,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.ENVIRONMENT == "production":
        shared_processors.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=settings.ENVIRONMENT == "development")

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ]
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers = [h for h in root_logger.handlers if not getattr(h, "_planorama", False)]
    handler._planorama = True
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

    # Access logs repeat the raw request line, secrets included
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
