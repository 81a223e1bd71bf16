"""
거래 해시 체인 계산

hash = SHA256(previous_hash || canonical_json(hash 를 제외한 필드))

canonical_json 은 키 정렬 + 공백 없는 구분자를 사용한다. created_at 은
UTC naive ISO-8601(마이크로초)로 정규화하여, 저장소가 tzinfo 를 보존하든
버리든 같은 해시가 다시 계산되도록 한다.
"""

import hashlib
import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional


def normalize_timestamp(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.isoformat(timespec="microseconds")


def _str_or_none(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def transaction_fields(
    id: Any,
    sequence: int,
    from_wallet_id: Any,
    to_wallet_id: Any,
    amount: int,
    type: Any,
    reference_id: Optional[str],
    created_at: datetime,
) -> Dict[str, Any]:
    return {
        "id": str(id),
        "sequence": int(sequence),
        "from": _str_or_none(from_wallet_id),
        "to": _str_or_none(to_wallet_id),
        "amount": int(amount),
        "type": getattr(type, "value", type),
        "reference_id": reference_id,
        "created_at": normalize_timestamp(created_at),
    }


def canonical_json(fields: Dict[str, Any]) -> str:
    return json.dumps(fields, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def compute_hash(previous_hash: str, fields: Dict[str, Any]) -> str:
    digest = hashlib.sha256()
    digest.update(previous_hash.encode("utf-8"))
    digest.update(canonical_json(fields).encode("utf-8"))
    return digest.hexdigest()


def hash_transaction(tx) -> str:
    """저장된 Transaction 행으로부터 해시를 다시 계산"""
    return compute_hash(
        tx.previous_hash,
        transaction_fields(
            tx.id,
            tx.sequence,
            tx.from_wallet_id,
            tx.to_wallet_id,
            tx.amount,
            tx.type,
            tx.reference_id,
            tx.created_at,
        ),
    )
