"""
Structured logging for the book swap service using structlog.
Provides JSON or console output and a ledger-specific event logger.
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Union
import structlog
from structlog.stdlib import LoggerFactory


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    log_file: Optional[Union[str, Path]] = None,
    debug: bool = False
) -> None:
    """
    Set up structured logging with configurable output formats.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Output format (json or console)
        log_file: Optional log file path
        debug: Add call site information to every event
    """
    level = getattr(logging, log_level.upper())

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
    )

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if debug:
        processors.append(structlog.processors.CallsiteParameterAdder())

    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter('%(message)s'))
        logging.getLogger().addHandler(file_handler)

    structlog.get_logger(__name__).info(
        "Logging system initialized",
        level=log_level,
        format=log_format,
        file=str(log_file) if log_file else None,
        debug=debug
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


class LedgerLogger:
    """
    Specialized logger for ownership ledger and match events.
    """

    def __init__(self, name: str = "catalog.ledger"):
        self.logger = structlog.get_logger(name)

    def log_claim_added(self, item_id: str, external_id: str, user: str, kind: str, created: bool) -> None:
        """Log a user claim being added to an item."""
        self.logger.info(
            "Claim added",
            item_id=item_id,
            external_id=external_id,
            user=user,
            kind=kind,
            created=created
        )

    def log_claim_rejected(self, external_id: str, user: str, reason: str) -> None:
        """Log a claim that was refused."""
        self.logger.warning(
            "Claim rejected",
            external_id=external_id,
            user=user,
            reason=reason
        )

    def log_claim_removed(self, item_id: str, user: str, kind: str) -> None:
        """Log a user claim being removed from an item."""
        self.logger.info(
            "Claim removed",
            item_id=item_id,
            user=user,
            kind=kind
        )

    def log_item_deleted(self, item_id: str, external_id: str) -> None:
        """Log an item removed because no user references it anymore."""
        self.logger.info(
            "Catalog item deleted",
            item_id=item_id,
            external_id=external_id
        )

    def log_bulk_removal(self, user: str, items: int, success: bool = True) -> None:
        """Log removal of every claim held by a user."""
        level = "info" if success else "error"
        getattr(self.logger, level)(
            "Bulk claim removal",
            user=user,
            items=items,
            success=success
        )

    def log_matches_found(self, user: str, wanted_items: int, matches: int) -> None:
        """Log the outcome of a match search."""
        self.logger.info(
            "Match search completed",
            user=user,
            wanted_items=wanted_items,
            matches=matches
        )
