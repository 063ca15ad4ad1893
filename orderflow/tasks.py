"""
Celery Tasks
Background tasks for archiving finished orders.
"""

import logging
import time
from datetime import datetime

from orderflow.celery_worker import celery_app
from orderflow.services.excel_manager import ExcelManager

logger = logging.getLogger(__name__)


class LedgerWriteError(RuntimeError):
    """Ledger row could not be written; triggers a retry."""


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    autoretry_for=(LedgerWriteError,),
    retry_backoff=True
)
def export_order_to_history(self, order_data: dict) -> dict:
    """
    Append a finished order to the Excel history ledger.

    Args:
        order_data: Row built by orderflow.services.history.export_payload

    Returns:
        dict: Result of the export operation
    """
    task_id = self.request.id
    order_id = order_data.get('order_id', 'unknown')

    logger.info(f"Task {task_id}: archiving order #{order_id}")
    start_time = time.time()

    result = ExcelManager.export_order(order_data)

    elapsed = round(time.time() - start_time, 3)
    result['task_id'] = task_id
    result['processing_time_seconds'] = elapsed

    if not result['success']:
        logger.warning(f"Task {task_id}: order #{order_id} failed after {elapsed}s - {result['message']}")
        raise LedgerWriteError(result['message'])

    logger.info(f"Task {task_id}: order #{order_id} archived in {elapsed}s")
    return result


@celery_app.task
def clear_history_export() -> dict:
    """
    Remove the history ledger (for testing/reset purposes).
    """
    success = ExcelManager.clear_all()
    return {
        'success': success,
        'message': 'History ledger cleared' if success else 'Failed to clear history ledger',
        'timestamp': datetime.now().isoformat()
    }
