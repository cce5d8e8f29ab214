import pandas as pd
from sqlalchemy.orm import Session
import logging

from ..errors import InvalidInput
from .stores import StoreRegistry

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("store_id", "name")
TRUE_VALUES = {"1", "true", "yes", "y", "on"}

def parse_enabled(value):
    if value is None or pd.isna(value):
        return None
    if isinstance(value, str):
        return value.strip().lower() in TRUE_VALUES
    return bool(value)

class StoreLoader:
    def __init__(self, db: Session, batch_size: int = 500):
        self.db = db
        self.batch_size = batch_size
        self.registry = StoreRegistry(db)

    def _log_progress(self, processed: int, total: int):
        percentage = (processed / total) * 100
        logger.info(f"processed batch  {percentage:.0f}%")

    def load_stores(self, csv_path):
        logger.info(f"Starting store upload from {csv_path}")

        # keep ids like "0042" intact
        try:
            df = pd.read_csv(csv_path, dtype=str, keep_default_na=False)
        except pd.errors.EmptyDataError:
            raise InvalidInput("CSV file is empty")
        df.columns = [c.strip() for c in df.columns]
        missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
        if missing:
            raise InvalidInput(f"CSV missing columns: {', '.join(missing)}")

        total_records = len(df)
        logger.info(f"Found {total_records} records")

        records_loaded = 0
        for start_idx in range(0, total_records, self.batch_size):
            end_idx = min(start_idx + self.batch_size, total_records)
            batch_df = df.iloc[start_idx:end_idx]

            try:
                for _, row in batch_df.iterrows():
                    enabled = row["enabled"] if "enabled" in df.columns else None
                    if enabled == "":
                        enabled = None
                    self.registry.upsert(
                        row["store_id"],
                        row["name"],
                        device_token=row["device_token"] if "device_token" in df.columns else None,
                        enabled=parse_enabled(enabled),
                        commit=False,
                    )
                    # later rows may repeat a store_id
                    self.db.flush()
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise

            records_loaded += len(batch_df)
            self._log_progress(records_loaded, total_records)

        logger.info(f"Store upload completed: {records_loaded} records")
        return records_loaded
