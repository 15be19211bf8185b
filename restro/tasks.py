"""
Celery Tasks
Background report exports, run outside the request cycle.
"""

import logging
import time

from restro.celery_worker import celery_app
from restro.services.excel_manager import ExcelManager

logger = logging.getLogger(__name__)


class ExportFailed(Exception):
    """Raised so Celery retries a failed export."""


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    autoretry_for=(ExportFailed,),
    retry_backoff=True
)
def export_orders_report(self, restaurant_id: str, orders: list[dict]) -> dict:
    """
    Write a restaurant's order snapshot to its Excel export.

    Args:
        restaurant_id: Tenant whose orders are exported
        orders: Order snapshot as served by the API

    Returns:
        dict: Result of the export operation
    """
    task_id = self.request.id
    logger.info(f"Task {task_id}: exporting {len(orders)} orders for {restaurant_id}")
    start_time = time.time()

    result = ExcelManager().export_orders(restaurant_id, orders)

    elapsed = round(time.time() - start_time, 3)
    result['task_id'] = task_id
    result['processing_time_seconds'] = elapsed

    if not result['success']:
        logger.warning(f"Task {task_id}: export for {restaurant_id} failed after {elapsed}s - {result['message']}")
        raise ExportFailed(result['message'])

    logger.info(f"Task {task_id}: export for {restaurant_id} completed in {elapsed}s")
    return result

