from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from ledgerapi.config import settings


def _connect_args(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {"options": f"-csearch_path={settings.POSTGRES_SCHEMA}"}


_database_url = settings.database_url
_engine_kwargs = {}
if not _database_url.startswith("sqlite"):
    _engine_kwargs = {
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_pre_ping": True,  # 연결 유효성 검사
        "pool_recycle": 3600,  # 1시간마다 연결 재생성
    }

engine = create_engine(
    _database_url,
    echo=settings.DEBUG,  # 디버그 모드에서 SQL 로깅
    connect_args=_connect_args(_database_url),
    **_engine_kwargs,
)

# Use expire_on_commit=False to avoid DetachedInstanceError when accessing
# attributes after commit within the same request scope (common FastAPI pattern).
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    expire_on_commit=False,
)
