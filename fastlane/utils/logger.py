"""Structured logging setup using structlog"""

import logging
import sys
from typing import Any, Optional

import structlog

from fastlane.config import Settings, settings


def configure_third_party_loggers(log_level: int):
    """Keep third-party loggers at WARNING or above so transfer noise stays out of the console"""

    quiet_level = max(log_level, logging.WARNING)

    # Uvicorn access log is replaced by the activity log
    logging.getLogger("uvicorn.access").setLevel(logging.ERROR)
    logging.getLogger("uvicorn.error").setLevel(quiet_level)

    # APScheduler logs every job execution at INFO
    logging.getLogger("apscheduler").setLevel(quiet_level)
    logging.getLogger("apscheduler.executors").setLevel(quiet_level)
    logging.getLogger("apscheduler.scheduler").setLevel(quiet_level)

    # Multipart parser
    logging.getLogger("multipart").setLevel(quiet_level)
    logging.getLogger("python_multipart").setLevel(quiet_level)

    # QR rendering pulls in Pillow
    logging.getLogger("PIL").setLevel(quiet_level)

    logging.getLogger("asyncio").setLevel(quiet_level)


def configure_logging(config: Optional[Settings] = None):
    """Configure structured logging with environment-aware settings"""
    config = config or settings

    log_level = getattr(logging, config.log_level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )
    logging.getLogger().setLevel(log_level)

    configure_third_party_loggers(log_level)

    if config.log_format == "console" or config.environment == "development":
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> Any:
    """Get a logger instance"""
    return structlog.get_logger(name)


def redact_token(token: Optional[str]) -> str:
    """
    Mask the session token for log output.

    Args:
        token: Session token (can be None)

    Returns:
        The first two characters followed by a mask, or [NOT_SET]
    """
    if not token:
        return "[NOT_SET]"
    return f"{token[:2]}{'*' * max(len(token) - 2, 0)}"


def log_server_config(logger: Any, config: Settings) -> None:
    """
    Log the effective server configuration without the session token.

    Args:
        logger: Logger instance
        config: Settings object
    """
    logger.info(
        "server_config_loaded",
        host=config.host,
        port=config.port,
        upload_dir=str(config.upload_dir),
        max_file_size_mb=config.max_file_size // (1024 * 1024),
        max_files=config.max_files,
        download_chunk_size_kb=config.download_chunk_size // 1024,
        require_approval=config.require_approval,
        clear_on_shutdown=config.clear_on_shutdown,
    )


# Configure logging on import
configure_logging()
