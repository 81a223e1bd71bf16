import uuid
from datetime import datetime, timezone

from ledgerapi.models.ledger import GENESIS_HASH
from ledgerapi.utils.hash_chain import (
    canonical_json,
    compute_hash,
    normalize_timestamp,
    transaction_fields,
)


def _fields(amount: int = 10):
    return transaction_fields(
        uuid.UUID("22222222-2222-2222-2222-222222222222"),
        1,
        None,
        uuid.UUID("11111111-1111-1111-1111-111111111111"),
        amount,
        "MINT",
        "MINT_TEST",
        datetime(2026, 9, 1, 12, 0, 0, 123456, tzinfo=timezone.utc),
    )


class TestHashChain:
    def test_aware_and_naive_utc_normalize_the_same(self):
        aware = datetime(2026, 9, 1, 12, 0, 0, 5, tzinfo=timezone.utc)
        naive = datetime(2026, 9, 1, 12, 0, 0, 5)

        assert normalize_timestamp(aware) == normalize_timestamp(naive)
        assert normalize_timestamp(naive) == "2026-09-01T12:00:00.000005"

    def test_canonical_json_is_key_order_independent(self):
        assert canonical_json({"b": 1, "a": None}) == canonical_json({"a": None, "b": 1})

    def test_hash_depends_on_previous_hash_and_fields(self):
        base = compute_hash(GENESIS_HASH, _fields())

        assert base == compute_hash(GENESIS_HASH, _fields())
        assert len(base) == 64
        assert base != compute_hash("f" * 64, _fields())
        assert base != compute_hash(GENESIS_HASH, _fields(amount=11))
