"""
Excel Verification Script

Checks the exported sales report workbook.
Run from project root: python scripts/verify.py

Author: Khalil_Bannouri
Version: 3.0.0
"""

import os
import sys
from datetime import datetime

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from restaurant_crm.services.excel_manager import ExcelManager


def verify_export(report_name: str = "sales") -> bool:
    """Verify the exported workbook matches its own summary."""
    path = ExcelManager.report_path(report_name)

    print("=" * 60)
    print("🔍 EXCEL VERIFICATION REPORT")
    print("=" * 60)
    print(f"⏰ Timestamp: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"📄 File: {path}")
    print("=" * 60)

    if not path.exists():
        print("\n❌ Export not found!")
        print("   Queue one first: POST /api/reports/sales/export")
        return False

    sheets = ExcelManager.read_report(report_name)
    summary = sheets[ExcelManager.SUMMARY_SHEET]
    rows = sheets[ExcelManager.DATA_SHEET]
    if not summary:
        print("\n❌ Summary sheet is empty")
        return False

    summary = summary[0]
    print(f"\n📊 Buckets: {len(rows)}")
    print(f"   Orders: {summary.get('total_orders')}")
    print(f"   Revenue: ${summary.get('total_revenue', 0):.2f}")

    bucket_orders = sum(int(r.get("total_orders", 0)) for r in rows)
    bucket_revenue = round(sum(float(r.get("total_revenue", 0)) for r in rows), 2)

    ok = True
    if bucket_orders != summary.get("total_orders"):
        print(f"\n⚠️ Bucket orders {bucket_orders} != summary {summary.get('total_orders')}")
        ok = False
    if abs(bucket_revenue - float(summary.get("total_revenue", 0))) > 0.01 * max(len(rows), 1):
        print(f"\n⚠️ Bucket revenue {bucket_revenue} != summary {summary.get('total_revenue')}")
        ok = False

    print("\n✅ Export is consistent" if ok else "\n❌ Export has inconsistencies")
    print("=" * 60)
    return ok


if __name__ == "__main__":
    sys.exit(0 if verify_export() else 1)
