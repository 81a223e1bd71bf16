import sys
import os
import uuid

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import text

from ledgerapi.config import settings
from ledgerapi.database.connection import engine, SessionLocal
from ledgerapi.models import Base, Wallet
from ledgerapi.services.ledger_service import LedgerService


def ensure_treasury_wallet(db) -> uuid.UUID:
    """트레저리 지갑(고정 ID)이 없으면 생성"""
    wallet_id = uuid.UUID(settings.TREASURY_WALLET_ID)
    if db.get(Wallet, wallet_id) is None:
        LedgerService(db).create_wallet(
            uuid.UUID(settings.TREASURY_OWNER_ID), wallet_id=wallet_id
        )
        print(f"Treasury wallet created: {wallet_id}")
    return wallet_id


def init_db():
    """데이터베이스 초기화"""
    try:
        # 스키마 생성 (PostgreSQL)
        if engine.dialect.name == "postgresql":
            with engine.connect() as conn:
                conn.execute(
                    text(f"CREATE SCHEMA IF NOT EXISTS {settings.POSTGRES_SCHEMA}")
                )
                conn.commit()

        # 테이블 생성
        Base.metadata.create_all(bind=engine)

        db = SessionLocal()
        try:
            ensure_treasury_wallet(db)
        finally:
            db.close()

        print(
            f"Database initialized successfully with schema: {settings.POSTGRES_SCHEMA}"
        )

    except Exception as e:
        print(f"Database initialization failed: {str(e)}")
        raise


if __name__ == "__main__":
    init_db()
