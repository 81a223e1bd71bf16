from abc import ABC
from typing import TypeVar, Generic, Optional, Any, Type
from sqlalchemy.orm import Session
from pydantic import BaseModel

T = TypeVar("T")
SchemaType = TypeVar("SchemaType", bound=BaseModel)


class BaseRepository(Generic[T, SchemaType], ABC):
    """모든 리포지토리의 베이스 클래스 - Pydantic 응답 보장

    쓰기 메서드는 commit 인자를 받는다. commit=False 이면 flush 만 하고
    트랜잭션 경계는 호출자(서비스)가 관리한다.
    """

    def __init__(
        self, model_class: Type[T], schema_class: Type[SchemaType], db: Session
    ):
        self.model_class = model_class
        self.schema_class = schema_class
        self.db = db

    def _to_schema(self, model_instance: Any) -> Optional[SchemaType]:
        """SQLAlchemy 모델을 Pydantic 스키마로 변환"""
        if model_instance is None:
            return None
        return self.schema_class.model_validate(model_instance)

    def _finish(self, commit: bool) -> None:
        try:
            self.db.flush()
            if commit:
                self.db.commit()
        except Exception:
            if commit:
                self.db.rollback()
            raise

    def get_model(self, id: Any) -> Optional[T]:
        """ID로 ORM 인스턴스 조회 (서비스 내부용)"""
        return self.db.get(self.model_class, id)

    def get_by_id(self, id: Any) -> Optional[SchemaType]:
        """ID로 조회 - Pydantic 스키마 반환"""
        return self._to_schema(self.get_model(id))

    def create(self, commit: bool = True, **kwargs) -> T:
        """새 레코드 생성 - ORM 인스턴스 반환"""
        instance = self.model_class(**kwargs)
        self.db.add(instance)
        self._finish(commit)
        return instance

    def update(self, instance_id: Any, commit: bool = True, **kwargs) -> Optional[T]:
        """레코드 업데이트"""
        instance = self.get_model(instance_id)
        if not instance:
            return None

        for key, value in kwargs.items():
            if hasattr(instance, key):
                setattr(instance, key, value)

        self._finish(commit)
        return instance
