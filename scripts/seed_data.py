"""
기본 경제 설정 / 광고 패키지 시드 스크립트
"""

import sys
import os
import uuid
from decimal import Decimal

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select

from ledgerapi.database.connection import SessionLocal
from ledgerapi.models import AdvertisingPackage
from ledgerapi.repositories.economy_config_repository import EconomyConfigRepository

DEFAULT_ECONOMY_CONFIG = {
    "ROLE_MINT_ESTUDIANTE": "100",
    "ROLE_MINT_USER": "100",
    "ROLE_MINT_SELLER": "150",
    "ROLE_MINT_ADMIN": "200",
}

DEFAULT_AD_PACKAGES = [
    ("Flash 24h", Decimal("20"), 24),
    ("Weekly Boost", Decimal("100"), 168),
]


def seed():
    db = SessionLocal()
    try:
        EconomyConfigRepository(db).upsert_many(DEFAULT_ECONOMY_CONFIG)

        existing = set(db.execute(select(AdvertisingPackage.name)).scalars())
        for name, price, hours in DEFAULT_AD_PACKAGES:
            if name not in existing:
                db.add(
                    AdvertisingPackage(
                        id=uuid.uuid4(), name=name, price=price, duration_hours=hours
                    )
                )
        db.commit()
        print("Seed data inserted")
    except Exception as e:
        db.rollback()
        print(f"Seeding failed: {str(e)}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed()
