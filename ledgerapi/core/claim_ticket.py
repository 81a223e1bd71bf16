"""
리워드 이벤트 QR 클레임 티켓

티켓은 사용자 자격 증명이 아니라, 특정 이벤트와 짧은 유효 시간(qr_refresh_rate 초)에
수령 시도를 묶어 주는 회전형 서명 토큰입니다. 이벤트마다 고유한 secret_key 로 서명합니다.
"""

import time
from typing import Any, Dict, Optional

from jose import jwt, JWTError

from ledgerapi.config import settings


class ClaimTicketError(Exception):
    """서명 불일치, 만료, 잘못된 형식 모두 이 예외로 보고됩니다."""


def sign(
    payload: Dict[str, Any],
    secret: str,
    ttl_seconds: int,
    now: Optional[int] = None,
) -> str:
    issued_at = int(now if now is not None else time.time())
    claims = dict(payload)
    claims.update({"iat": issued_at, "exp": issued_at + int(ttl_seconds)})
    return jwt.encode(claims, secret, algorithm=settings.CLAIM_TICKET_ALGORITHM)


def verify(
    token: str,
    secret: str,
    clock_tolerance_seconds: int = settings.CLAIM_TICKET_CLOCK_TOLERANCE_SECONDS,
) -> Dict[str, Any]:
    """토큰을 검증하고 payload 를 반환합니다.

    Raises:
        ClaimTicketError: 서명이 맞지 않거나 (허용 오차를 포함해) 만료된 경우
    """
    try:
        return jwt.decode(
            token,
            secret,
            algorithms=[settings.CLAIM_TICKET_ALGORITHM],
            options={"leeway": clock_tolerance_seconds},
        )
    except JWTError as e:
        raise ClaimTicketError(str(e)) from e
