"""
실제 PostgreSQL 에서의 동시성 테스트

SQLite 는 행 잠금이 없으므로, TEST_DATABASE_URL 이 지정된 경우에만 실행합니다.
    TEST_DATABASE_URL=postgresql+psycopg2://user:pw@localhost/ledger_test pytest tests/test_concurrency_postgres.py
"""

import os
import uuid
from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import sessionmaker

from ledgerapi.config import settings
from ledgerapi.core.exceptions import ConflictError, InsufficientFundsError
from ledgerapi.models import (
    AdvertisingPackage,
    Base,
    Product,
    ProductAd,
    Store,
    Transaction,
    User,
    Wallet,
)
from ledgerapi.services.ad_service import AdService
from ledgerapi.services.ledger_service import LedgerService

TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL")

pytestmark = pytest.mark.skipif(
    not TEST_DATABASE_URL, reason="TEST_DATABASE_URL not set (PostgreSQL required)"
)


@pytest.fixture
def pg_sessionmaker():
    engine = create_engine(TEST_DATABASE_URL, pool_size=20)
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    Base.metadata.drop_all(engine)
    engine.dispose()


def _make_wallets(Session, receivers: int):
    with Session() as db:
        treasury = Wallet(
            id=uuid.UUID(settings.TREASURY_WALLET_ID),
            owner_id=uuid.UUID(settings.TREASURY_OWNER_ID),
            currency_symbol=settings.CURRENCY_SYMBOL,
        )
        db.add(treasury)
        wallet_ids = [uuid.uuid4() for _ in range(receivers)]
        for wallet_id in wallet_ids:
            db.add(Wallet(id=wallet_id, owner_id=uuid.uuid4(), currency_symbol="PL"))
        db.commit()
        return treasury.id, wallet_ids


class TestConcurrentTransfers:
    def test_parallel_transfers_never_overspend(self, pg_sessionmaker):
        # Arrange - 100 코인에 대해 10 코인씩 15건 동시 요청
        treasury_id, receivers = _make_wallets(pg_sessionmaker, 15)
        with pg_sessionmaker() as db:
            LedgerService(db).mint_tokens(treasury_id, 100)

        def transfer(wallet_id):
            with pg_sessionmaker() as db:
                try:
                    LedgerService(db).transfer_tokens(treasury_id, wallet_id, 10)
                    return True
                except InsufficientFundsError:
                    return False

        # Act
        with ThreadPoolExecutor(max_workers=15) as pool:
            results = list(pool.map(transfer, receivers))

        # Assert
        with pg_sessionmaker() as db:
            ledger = LedgerService(db)
            received = sum(ledger.get_balance(wallet_id) for wallet_id in receivers)
            assert received == 10 * sum(results)
            assert received + ledger.get_balance(treasury_id) == 100
            assert ledger.get_supply().total_supply == 100

            sequences = list(db.execute(select(Transaction.sequence).order_by(Transaction.sequence)).scalars())
            assert sequences == list(range(1, len(sequences) + 1))
            assert db.execute(select(func.count(Transaction.id))).scalar_one() == 1 + sum(results)
            assert ledger.verify_chain().status == "OK"


class TestConcurrentAdPurchases:
    def test_one_active_promotion_per_product(self, pg_sessionmaker):
        # Arrange - 같은 상품에 대한 광고 구매 5건 동시 요청
        _make_wallets(pg_sessionmaker, 0)
        with pg_sessionmaker() as db:
            seller = User(
                id=uuid.uuid4(), email="seller@campus.test", name="seller", role="seller", is_active=True
            )
            seller_wallet = Wallet(id=uuid.uuid4(), owner_id=seller.id, currency_symbol="PL")
            store = Store(id=uuid.uuid4(), owner_id=seller.id, name="seller's store")
            product = Product(id=uuid.uuid4(), store_id=store.id, name="Notebook", price=30, stock=5)
            package = AdvertisingPackage(id=uuid.uuid4(), name="Spotlight 24h", price=10, duration_hours=24)
            db.add(seller)
            db.flush()
            db.add_all([seller_wallet, store])
            db.flush()
            db.add_all([product, package])
            db.commit()
            seller_id, wallet_id = seller.id, seller_wallet.id
            product_id, package_id = product.id, package.id
        with pg_sessionmaker() as db:
            LedgerService(db).mint_tokens(wallet_id, 100)

        def purchase(_):
            with pg_sessionmaker() as db:
                try:
                    AdService(db).purchase_package(seller_id, product_id, package_id)
                    return True
                except ConflictError:
                    return False

        # Act
        with ThreadPoolExecutor(max_workers=5) as pool:
            results = list(pool.map(purchase, range(5)))

        # Assert
        assert sum(results) == 1
        with pg_sessionmaker() as db:
            assert db.execute(select(func.count(ProductAd.id))).scalar_one() == 1
            assert LedgerService(db).get_balance(wallet_id) == 90
