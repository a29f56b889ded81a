"""
Excel File Manager with Concurrency Control

Process-safe Excel exports of report data. Each report is written to
`<data_directory>/<report>_report.xlsx` with a "summary" sheet and a
"data" sheet, under a file lock so concurrent workers never interleave
writes.

Author: Khalil Bannouri
Version: 3.0.0
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any

import pandas as pd
from filelock import FileLock, Timeout

from restaurant_crm.core.config import get_settings

logger = logging.getLogger(__name__)


class ExcelManager:
    """Writes report payloads to Excel workbooks."""

    SUMMARY_SHEET = "summary"
    DATA_SHEET = "data"

    @classmethod
    def data_dir(cls) -> Path:
        return Path(get_settings().data_directory)

    @classmethod
    def report_path(cls, report_name: str) -> Path:
        return cls.data_dir() / f"{report_name}_report.xlsx"

    @classmethod
    def _ensure_data_dir(cls) -> None:
        """Create data directory if needed."""
        data_dir = cls.data_dir()
        if not data_dir.exists():
            data_dir.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created data directory: {data_dir}")

    @classmethod
    def export_report(
        cls,
        report_name: str,
        summary: dict[str, Any],
        rows: list[dict[str, Any]],
    ) -> dict[str, Any]:
        """
        Overwrite the workbook for `report_name` with one summary row and the data rows.

        Nested dict values in `rows` are flattened into `parent.child` columns.

        Returns:
            dict with success flag, message, file path and export time
        """
        cls._ensure_data_dir()

        file_path = cls.report_path(report_name)
        timeout = get_settings().export_lock_timeout
        result = {
            "success": False,
            "message": "",
            "report": report_name,
            "file": str(file_path),
            "exported_at": None,
        }

        try:
            with FileLock(f"{file_path}.lock", timeout=timeout):
                logger.debug(f"Lock acquired for {file_path.name}")

                export_time = datetime.now().isoformat()
                summary_df = pd.DataFrame([{**summary, "exported_at": export_time}])
                data_df = pd.json_normalize(rows) if rows else pd.DataFrame()

                with pd.ExcelWriter(file_path, engine="openpyxl") as writer:
                    summary_df.to_excel(writer, sheet_name=cls.SUMMARY_SHEET, index=False)
                    data_df.to_excel(writer, sheet_name=cls.DATA_SHEET, index=False)

                logger.info(f"📊 {report_name} report exported ({len(rows)} rows) to {file_path}")
                result["success"] = True
                result["message"] = f"{report_name} report exported"
                result["exported_at"] = export_time

            logger.debug(f"Lock released for {file_path.name}")

        except Timeout:
            result["message"] = f"Lock timeout ({timeout}s)"
            logger.error(f"Lock timeout for {file_path.name}")

        return result

    @classmethod
    def read_report(cls, report_name: str) -> dict[str, list[dict[str, Any]]]:
        """Load both sheets of an exported report, or empty lists if it was never written."""
        file_path = cls.report_path(report_name)
        if not file_path.exists():
            return {cls.SUMMARY_SHEET: [], cls.DATA_SHEET: []}

        sheets = pd.read_excel(file_path, sheet_name=None, engine="openpyxl")
        return {
            name: sheets[name].to_dict("records") if name in sheets else []
            for name in (cls.SUMMARY_SHEET, cls.DATA_SHEET)
        }
