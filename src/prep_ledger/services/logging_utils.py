"""Service layer logging utilities.

Provides structured logging functions for service operations, enabling
consistent log format and context across conversion, ledger and
production run operations.

Usage:
    from prep_ledger.services.logging_utils import get_service_logger, log_operation

    logger = get_service_logger(__name__)

    log_operation(
        logger,
        operation="complete_production_run",
        outcome="success",
        production_run_id=123,
        cost_per_unit=2.495,
    )

    log_operation(
        logger,
        operation="convert",
        outcome="fallback_1:1",
        level=logging.WARNING,
        product_id=45,
        source_unit="pinch",
    )
"""

import logging
from typing import Any, Optional


def get_service_logger(name: str) -> logging.Logger:
    """
    Get a logger configured for service operations.

    Args:
        name: Logger name (typically __name__ of the calling module)

    Returns:
        Logger instance with the 'prep_ledger.services' prefix.

    Example:
        >>> logger = get_service_logger(__name__)
        >>> logger.name
        'prep_ledger.services.production_run_service'
    """
    if "." in name:
        name = name.split(".")[-1]
    return logging.getLogger(f"prep_ledger.services.{name}")


def log_operation(
    logger: logging.Logger,
    operation: str,
    outcome: str,
    level: int = logging.INFO,
    **context: Any,
) -> None:
    """
    Log a service operation with structured context.

    The context is passed via the 'extra' parameter so handlers that emit
    structured records (JSON formatters, log shippers) receive each field.

    Args:
        logger: Logger instance to use
        operation: Operation name (e.g., "complete_production_run", "post_transaction")
        outcome: Outcome description (e.g., "success", "zero_yield", "error")
        level: Log level (default: INFO). Use DEBUG for per-entry postings.
        **context: Additional context fields. Common fields:
            - production_run_id: Run being completed
            - product_id: Product being converted or posted
            - reference_id: Ledger reference
            - error: Error message if outcome is "error"
    """
    extra = {
        "operation": operation,
        "outcome": outcome,
        **context,
    }
    logger.log(level, f"{operation}: {outcome}", extra=extra)


def configure_logging(level: Optional[int] = None) -> None:
    """
    Configure root logging for command-line use.

    Args:
        level: Logging level; defaults to the configured PREP_LEDGER_LOG_LEVEL
    """
    if level is None:
        from prep_ledger.utils.config import get_config

        level = get_config().log_level

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
