"""
Trace events for transactional attempts.

Every event carries the attempt's correlation id so inventory checks, order
creation, payment outcome and commit/rollback can be stitched back together
from the logs. Emission never raises into the caller.
"""
import json
import logging
import uuid

logger = logging.getLogger("trace")


def new_correlation_id(prefix: str) -> str:
    """Random, collision-resistant id for one transactional attempt."""
    return f"{prefix}{uuid.uuid4().hex}"


def emit(event: str, transaction_id: str, *, level: int = logging.INFO, **fields) -> None:
    """Log `EVENT {"transactionId": ..., ...}` on the trace logger."""
    try:
        payload = json.dumps({"transactionId": transaction_id, **fields}, default=str)
        logger.log(level, f"{event} {payload}")
    except Exception:
        # Tracing must not abort the unit of work it describes.
        pass


def emit_error(event: str, transaction_id: str, **fields) -> None:
    emit(event, transaction_id, level=logging.ERROR, **fields)
