from typing import TypeVar, Generic, Type, Any, Optional
from zoneinfo import ZoneInfo
from sqlalchemy import Select, select
from sqlalchemy.orm import Session
from app.core.timewindow import resolve_timezone
from app.db.base import Base
from app.models.academia import Academia

ModelType = TypeVar("ModelType", bound=Base)

class TenantCRUD(Generic[ModelType]):
    """Acesso a tabelas particionadas por academia.

    Toda consulta passa por ``scoped``: não há caminho que monte um SELECT
    sem o predicado ``academia_id``.
    """

    def __init__(self, model: Type[ModelType]): self.model = model

    def scoped(self, academia_id: int) -> Select:
        return select(self.model).where(self.model.academia_id == academia_id)

    def get(self, db: Session, id: Any, academia_id: int, *, include_deleted: bool = True) -> Optional[ModelType]:
        stmt = self.scoped(academia_id).where(self.model.id == id)
        if not include_deleted and hasattr(self.model, "deleted_at"):
            stmt = stmt.where(self.model.deleted_at.is_(None))
        return db.execute(stmt.limit(1)).unique().scalar_one_or_none()

    def tenant_of(self, db: Session, id: Any) -> Optional[int]:
        """Academia dona do registro (só o id, nunca o conteúdo).

        Usado apenas para diferenciar 404 de 403 nos fluxos de check-in e decisão.
        """
        return db.execute(select(self.model.academia_id).where(self.model.id == id).limit(1)).scalar_one_or_none()

    def save(self, db: Session, obj: ModelType) -> ModelType:
        db.add(obj); db.commit(); db.refresh(obj)
        return obj


def academia_timezone(db: Session, academia_id: int) -> ZoneInfo:
    tz_name = db.execute(select(Academia.timezone).where(Academia.id == academia_id)).scalar_one_or_none()
    return resolve_timezone(tz_name)
