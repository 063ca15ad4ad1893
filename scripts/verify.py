"""
History Ledger Verification Script

Checks the Excel history ledger written by the Celery worker.
Run from project root:

    python scripts/verify.py           # integrity report
    python scripts/verify.py --clear   # ask the worker to delete the ledger
"""

import argparse
from datetime import datetime

import pandas as pd

from orderflow.services.excel_manager import ExcelManager
from orderflow.tasks import clear_history_export


def verify_ledger() -> bool:
    """Verify ledger integrity after a simulation run."""
    path = ExcelManager.ledger_path()

    print("=" * 60)
    print("HISTORY LEDGER VERIFICATION REPORT")
    print("=" * 60)
    print(f"Timestamp: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"File: {path}")
    print("=" * 60)

    if not path.exists():
        print("\nLedger file not found!")
        print("   Enable HISTORY_EXPORT_ENABLED and run: python scripts/simulate.py")
        return False

    try:
        df = pd.read_excel(path, engine="openpyxl")
        print("\nFile loaded successfully!")
    except Exception as e:
        print(f"\nCould not read ledger: {e}")
        return False

    print("\nSTATISTICS:")
    print(f"   Total Orders: {len(df)}")

    missing = [col for col in ExcelManager.ORDER_COLUMNS if col not in df.columns]
    if missing:
        print(f"\nMissing Columns: {missing}")
    else:
        print("\nAll ledger columns present")

    ok = not missing
    if "order_id" in df.columns:
        duplicates = int(df["order_id"].duplicated().sum())
        if duplicates > 0:
            print(f"\n{duplicates} duplicate order IDs found!")
            ok = False
        else:
            print("No duplicate order IDs")

    if "order_status" in df.columns:
        unfinished = df[~df["order_status"].isin(["completed", "cancelled"])]
        if len(unfinished) > 0:
            print(f"\n{len(unfinished)} rows are not finished orders!")
            ok = False
        print("\nBY STATUS:")
        print(df["order_status"].value_counts().to_string())

    if "total_amount" in df.columns and len(df) > 0:
        print("\nREVENUE:")
        print(f"   Total: ${df['total_amount'].sum() / 100:.2f}")
        print(f"   Average: ${df['total_amount'].mean() / 100:.2f}")

    print("\nRECENT ORDERS:")
    print("-" * 60)
    if len(df) > 0:
        cols = [c for c in ["order_id", "customer_name", "total_amount", "order_status"] if c in df.columns]
        print(df[cols].tail(5).to_string(index=False))

    print("\n" + "=" * 60)
    print("VERIFICATION COMPLETE" if ok else "VERIFICATION FOUND PROBLEMS")
    print("=" * 60)

    return ok


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="History ledger verification")
    parser.add_argument("--clear", action="store_true", help="Queue deletion of the ledger")
    args = parser.parse_args()

    if args.clear:
        # The worker owns the ledger file and its lock
        task = clear_history_export.delay()
        print(f"Clear queued as task {task.id}: {task.get(timeout=30)['message']}")
    else:
        verify_ledger()
