"""
Logging Configuration
"""

from loguru import logger
import sys
from pathlib import Path

from src.config.settings import settings

_configured = False


def setup_logger():
    """
    Setup application logger with console and file output

    Every module calls this at import time; sinks are only added once.

    Returns:
        logger: Configured logger instance
    """
    global _configured
    if _configured:
        return logger

    # Remove default logger
    logger.remove()

    log_dir = Path(settings.LOG_DIR)
    log_dir.mkdir(parents=True, exist_ok=True)

    # Console logging
    logger.add(
        sys.stdout,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        level=settings.LOG_LEVEL,
        colorize=True
    )

    # File logging - all logs
    logger.add(
        log_dir / "app.log",
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
        level=settings.LOG_LEVEL,
        rotation="10 MB",
        retention="30 days",
        compression="zip"
    )

    # File logging - errors only
    logger.add(
        log_dir / "error.log",
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
        level="ERROR",
        rotation="10 MB",
        retention="90 days",
        compression="zip"
    )

    # File logging - approval and user-management audit trail
    logger.add(
        log_dir / "audit.log",
        format="{time:YYYY-MM-DD HH:mm:ss} | {message}",
        filter=lambda record: "AUDIT" in record["extra"],
        rotation="10 MB",
        retention="365 days",
        compression="zip"
    )

    _configured = True
    return logger


def log_audit(user_id: int, action: str, details: str, company_id: int = None):
    """
    Log audit trail entry

    Args:
        user_id: User ID who performed the action
        action: Action performed (approve_expense, admin_override, ...)
        details: Action details
        company_id: Tenant the action belongs to
    """
    logger.bind(AUDIT=True).info(
        f"COMPANY_ID={company_id} | USER_ID={user_id} | ACTION={action} | DETAILS={details}"
    )
