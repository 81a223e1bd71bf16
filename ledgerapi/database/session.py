from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session

from ledgerapi.database.connection import SessionLocal


def get_db():
    db = SessionLocal()
    try:
        yield db
    except Exception:
        if db.in_transaction():
            db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def get_db_context():
    """컨텍스트 매니저를 사용한 데이터베이스 세션 관리"""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def unit_of_work(db: Session, commit: bool = True) -> Iterator[Session]:
    """하나의 논리 연산을 트랜잭션 경계로 감싼다.

    commit=True 이면 성공 시 커밋, 실패 시 롤백한다.
    commit=False 이면 호출자가 이미 트랜잭션을 소유하고 있는 것으로 보고
    flush 만 수행한다. 예외는 그대로 전파되므로 롤백은 호출자의 몫이다.
    """
    try:
        yield db
        if commit:
            db.commit()
        else:
            db.flush()
    except Exception:
        if commit:
            db.rollback()
        raise
