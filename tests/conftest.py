"""
Pytest fixtures for testing

서비스 테스트는 in-memory SQLite 위에서 실제 SQLAlchemy 세션으로 실행합니다.
라우터 테스트는 같은 세션을 get_db 오버라이드로 주입합니다.
"""

import os

# 설정은 import 시점에 읽히므로 ledgerapi import 전에 지정
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["REDIS_ENABLED"] = "false"
os.environ["BADGE_EVENTS_ENABLED"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"

import fnmatch
import uuid
from decimal import Decimal
from typing import Any, Dict, Optional
from unittest.mock import Mock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ledgerapi.config import settings
from ledgerapi.models import Base, Product, Store, User, Wallet
from ledgerapi.services.ledger_service import LedgerService


class InMemoryCache:
    """CacheService 와 같은 인터페이스의 프로세스 내 가짜 캐시"""

    def __init__(self):
        self.store: Dict[str, Any] = {}
        self.counters: Dict[str, int] = {}

    def ping(self) -> Optional[bool]:
        return True

    def get(self, key: str) -> Optional[Any]:
        return self.store.get(key)

    def set(self, key: str, value: Any, ttl_seconds: int) -> bool:
        self.store[key] = value
        return True

    def delete(self, *keys: str) -> int:
        return sum(1 for key in keys if self.store.pop(key, None) is not None)

    def delete_pattern(self, pattern: str) -> int:
        matched = [key for key in self.store if fnmatch.fnmatch(key, pattern)]
        for key in matched:
            del self.store[key]
        return len(matched)

    def incr_with_expiry(self, key: str, window_seconds: int) -> Optional[int]:
        self.counters[key] = self.counters.get(key, 0) + 1
        return self.counters[key]

    def invalidate(self, *keys_or_patterns: str) -> None:
        for item in keys_or_patterns:
            if "*" in item:
                self.delete_pattern(item)
            else:
                self.delete(item)

    def close(self):
        pass


@pytest.fixture
def db_engine():
    """Create in-memory SQLite engine shared across threads (TestClient)."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine) -> Session:
    """Create database session for tests"""
    SessionLocal = sessionmaker(bind=db_engine, autoflush=False, expire_on_commit=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def cache():
    return InMemoryCache()


@pytest.fixture
def publisher():
    return Mock()


@pytest.fixture
def ledger(db_session, publisher):
    return LedgerService(db_session, publisher=publisher)


@pytest.fixture
def treasury_wallet(db_session) -> Wallet:
    wallet = Wallet(
        id=uuid.UUID(settings.TREASURY_WALLET_ID),
        owner_id=uuid.UUID(settings.TREASURY_OWNER_ID),
        currency_symbol=settings.CURRENCY_SYMBOL,
    )
    db_session.add(wallet)
    db_session.commit()
    return wallet


@pytest.fixture
def make_user(db_session):
    """사용자 + 지갑 생성 팩토리"""

    def _make_user(name: str = "student", role: str = "user", with_wallet: bool = True) -> User:
        user = User(
            id=uuid.uuid4(),
            email=f"{name}-{uuid.uuid4().hex[:8]}@campus.test",
            name=name,
            role=role,
            is_active=True,
        )
        db_session.add(user)
        if with_wallet:
            db_session.add(
                Wallet(id=uuid.uuid4(), owner_id=user.id, currency_symbol=settings.CURRENCY_SYMBOL)
            )
        db_session.commit()
        return user

    return _make_user


@pytest.fixture
def make_product(db_session):
    """상점 + 상품 생성 팩토리"""

    def _make_product(owner: User, price="30", stock: int = 5, name: str = "Notebook") -> Product:
        store = Store(id=uuid.uuid4(), owner_id=owner.id, name=f"{owner.name}'s store")
        db_session.add(store)
        product = Product(
            id=uuid.uuid4(),
            store_id=store.id,
            name=name,
            description="Used but clean",
            price=Decimal(str(price)),
            stock=stock,
            image_url="https://img.campus.test/notebook.png",
        )
        db_session.add(product)
        db_session.commit()
        return product

    return _make_product


@pytest.fixture
def wallet_of(db_session):
    """owner_id -> Wallet"""

    def _wallet_of(owner_id) -> Wallet:
        return db_session.query(Wallet).filter(Wallet.owner_id == owner_id).one()

    return _wallet_of
