from typing import Dict

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledgerapi.models.marketplace import EconomyConfig


class EconomyConfigRepository:
    """경제 정책 키/값 저장소"""

    def __init__(self, db: Session):
        self.db = db

    def get_all(self) -> Dict[str, str]:
        rows = self.db.execute(select(EconomyConfig)).scalars()
        return {row.key: row.value for row in rows}

    def upsert_many(self, configs: Dict[str, str], commit: bool = True) -> Dict[str, str]:
        for key, value in configs.items():
            row = self.db.get(EconomyConfig, key)
            if row is None:
                self.db.add(EconomyConfig(key=key, value=str(value)))
            else:
                row.value = str(value)
        try:
            self.db.flush()
            if commit:
                self.db.commit()
        except Exception:
            if commit:
                self.db.rollback()
            raise
        return self.get_all()
