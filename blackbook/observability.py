"""Logfire cloud observability initialization and instrumentation."""

import logging

import logfire

from blackbook import __version__
from blackbook.config import Settings

logger = logging.getLogger(__name__)


def initialize_logfire(settings: Settings) -> bool:
    """
    Initialize Logfire for the live betting runtime.

    Must be called ONCE at startup, before the service opens its HTTP clients.

    Instruments:
    - HTTPX clients (CoinGecko price source, remote ledger)
    - Python logging (bridges to Logfire)

    Args:
        settings: Application settings containing Logfire token

    Returns:
        True when Logfire was configured, False when it was skipped or failed.
    """
    if not settings.logfire_token:
        logger.warning("Logfire token not set - observability disabled")
        return False

    try:
        logfire.configure(
            token=settings.logfire_token,
            service_name="blackbook",
            service_version=__version__,
            environment="paper" if settings.ledger.paper_mode else "live",
        )

        logfire.instrument_httpx()

        root_logger = logging.getLogger()
        root_logger.addHandler(logfire.LogfireLoggingHandler())

        logger.info("Logfire cloud tracking initialized")
        return True

    except Exception as e:
        logger.warning(f"Failed to initialize Logfire: {e}")
        return False
