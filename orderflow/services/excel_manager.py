"""
Excel History Ledger with Concurrency Control

Appends finished orders to a spreadsheet. Several workers may write at
once, so every read-modify-write happens under a file lock.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any

import pandas as pd
from filelock import FileLock, Timeout

from orderflow.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)


class ExcelManager:
    """Process-safe Excel ledger manager."""

    LOCK_TIMEOUT = settings.excel_lock_timeout
    DATA_DIR = Path(settings.data_directory)
    FILE_NAME = settings.history_excel_filename

    ORDER_COLUMNS = [
        "order_id",
        "order_type",
        "order_status",
        "priority",
        "table_number",
        "customer_name",
        "customer_phone",
        "total_amount",
        "special_instructions",
        "created_at",
        "estimated_ready_time",
        "exported_at",
    ]

    @classmethod
    def ledger_path(cls) -> Path:
        return cls.DATA_DIR / cls.FILE_NAME

    @classmethod
    def lock_path(cls) -> Path:
        return cls.DATA_DIR / f"{cls.FILE_NAME}.lock"

    @classmethod
    def _ensure_data_dir(cls) -> None:
        """Create data directory if needed."""
        if not cls.DATA_DIR.exists():
            cls.DATA_DIR.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created data directory: {cls.DATA_DIR}")

    @classmethod
    def _load_or_create_df(cls) -> pd.DataFrame:
        """Load existing ledger or start an empty one."""
        path = cls.ledger_path()
        if path.exists():
            return pd.read_excel(path, engine="openpyxl")
        return pd.DataFrame(columns=cls.ORDER_COLUMNS)

    @classmethod
    def export_order(cls, order_data: dict[str, Any]) -> dict[str, Any]:
        """
        Append or replace the ledger row for one order.

        An order that is exported twice (e.g. cancelled after completion
        under the permissive policy) keeps only its latest row.
        """
        cls._ensure_data_dir()

        order_id = order_data.get("order_id", 0)
        result = {
            "success": False,
            "message": "",
            "order_id": order_id,
            "exported_at": None,
        }

        try:
            lock = FileLock(str(cls.lock_path()), timeout=cls.LOCK_TIMEOUT)

            with lock:
                logger.debug(f"Lock acquired for Order #{order_id}")

                df = cls._load_or_create_df()
                if not df.empty:
                    df = df[df["order_id"] != order_id]

                export_time = datetime.now().isoformat()
                new_row = {column: order_data.get(column) for column in cls.ORDER_COLUMNS}
                new_row["exported_at"] = export_time

                new_df = pd.DataFrame([new_row], columns=cls.ORDER_COLUMNS)
                df = new_df if df.empty else pd.concat([df, new_df], ignore_index=True)
                df.to_excel(str(cls.ledger_path()), index=False, engine="openpyxl")

                logger.info(f"Order #{order_id} written to history ledger")

                result["success"] = True
                result["message"] = f"Order #{order_id} exported"
                result["exported_at"] = export_time

            logger.debug(f"Lock released for Order #{order_id}")

        except Timeout:
            result["message"] = f"Lock timeout ({cls.LOCK_TIMEOUT}s)"
            logger.error(f"Lock timeout for Order #{order_id}")

        except Exception as e:
            result["message"] = str(e)
            logger.exception(f"Error exporting Order #{order_id}")

        return result

    @classmethod
    def get_all_orders(cls) -> list[dict[str, Any]]:
        """Get all ledger rows."""
        if not cls.ledger_path().exists():
            return []
        df = pd.read_excel(cls.ledger_path(), engine="openpyxl")
        return df.to_dict("records")

    @classmethod
    def clear_all(cls) -> bool:
        """Delete the ledger and its lock file."""
        try:
            for f in (cls.ledger_path(), cls.lock_path()):
                if f.exists():
                    f.unlink()
            logger.info("History ledger cleared")
            return True
        except OSError as e:
            logger.error(f"Error clearing ledger: {e}")
            return False
