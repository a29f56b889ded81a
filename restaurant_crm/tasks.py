"""
Celery Tasks
Background jobs for report exports.
"""

import logging
import time
from datetime import datetime

from celery.exceptions import SoftTimeLimitExceeded

from restaurant_crm.celery_worker import celery_app
from restaurant_crm.services.excel_manager import ExcelManager

logger = logging.getLogger(__name__)


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    autoretry_for=(OSError,),
    retry_backoff=True,
)
def export_report_to_excel(self, report_name: str, report: dict) -> dict:
    """
    Write an already-computed report to Excel.

    Args:
        report_name: Workbook prefix, e.g. "sales"
        report: JSON-safe report payload with "summary" and "sales_data"
            (or "items") keys

    Returns:
        dict: Result of the export operation
    """
    task_id = self.request.id
    logger.info(f"📋 Task {task_id}: exporting {report_name} report")
    start_time = time.time()

    rows = report.get("sales_data") or report.get("items") or []
    summary = {**report.get("summary", {}), **report.get("period", {})}
    try:
        result = ExcelManager.export_report(report_name, summary, rows)
    except SoftTimeLimitExceeded:
        logger.error(f"❌ Task {task_id}: {report_name} export hit its time limit")
        raise

    elapsed = round(time.time() - start_time, 3)
    result["task_id"] = task_id
    result["processing_time_seconds"] = elapsed

    if result["success"]:
        logger.info(f"✅ Task {task_id}: {report_name} report written in {elapsed}s")
    else:
        logger.warning(f"⚠️ Task {task_id}: {report_name} export failed - {result['message']}")

    return result


@celery_app.task
def health_check() -> dict:
    """
    Simple health check task to verify Celery is working.
    """
    return {
        "status": "healthy",
        "worker": "celery",
        "timestamp": datetime.now().isoformat(),
    }
