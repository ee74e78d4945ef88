# symtex_ledger/verify/alerts.py
"""Out-of-band alerting for chain integrity failures (possible tampering)."""

import logging
from typing import Callable

from symtex_ledger.core.errors import ChainIntegrityError

logger = logging.getLogger(__name__)

AlertSink = Callable[[ChainIntegrityError], None]


def log_alert(error: ChainIntegrityError) -> None:
    """Default sink: a CRITICAL log record. Wire a pager/webhook in by passing another sink."""
    logger.critical(
        "LEDGER INTEGRITY FAILURE at sequence %d [%s]: %s", error.sequence, error.category, error
    )
