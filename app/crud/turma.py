import logging
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.errors import Conflict, Forbidden, NotFound
from app.core.rbac import Actor, ensure_staff, parse_roles, is_staff
from app.core.timewindow import now_utc
from app.crud.base import TenantCRUD
from app.models.aula import Aula, AulaStatus
from app.models.tipo_treino import TipoTreino
from app.models.turma import Turma
from app.models.user import User
from app.schemas.turma import TurmaCreate, TurmaUpdate

logger = logging.getLogger(__name__)

_CAMPOS = ("nome", "tipo_treino_id", "dias_semana", "horario_padrao", "instrutor_padrao_id")


class CRUDTurma(TenantCRUD[Turma]):
    def list(self, db: Session, actor: Actor, *, include_deleted: bool = False, only_deleted: bool = False) -> List[Turma]:
        if (include_deleted or only_deleted) and not actor.is_staff:
            raise Forbidden("Apenas staff pode listar turmas deletadas")

        stmt = self.scoped(actor.academia_id)
        if only_deleted:
            stmt = stmt.where(Turma.deleted_at.is_not(None))
        elif not include_deleted:
            stmt = stmt.where(Turma.deleted_at.is_(None))
        return list(db.execute(stmt.order_by(Turma.nome.asc())).unique().scalars().all())

    def get_active(self, db: Session, id: int, actor: Actor) -> Turma:
        turma = self.get(db, id, actor.academia_id, include_deleted=False)
        if not turma:
            raise NotFound("Turma não encontrada")
        return turma

    def create(self, db: Session, actor: Actor, body: TurmaCreate) -> Turma:
        ensure_staff(actor)
        self._validate_refs(db, actor.academia_id, body.tipo_treino_id, body.instrutor_padrao_id)

        turma = Turma(academia_id=actor.academia_id, **body.model_dump())
        self.save(db, turma)
        logger.info("Turma %s criada na academia %s por %s", turma.id, actor.academia_id, actor.id)
        return turma

    def update(self, db: Session, id: int, actor: Actor, body: TurmaUpdate) -> Turma:
        ensure_staff(actor)
        turma = self.get_active(db, id, actor)

        data = {k: v for k, v in body.model_dump(exclude_unset=True).items() if k in _CAMPOS}
        self._validate_refs(db, actor.academia_id, data.get("tipo_treino_id"), data.get("instrutor_padrao_id"))

        if not data:
            return turma

        for k, v in data.items():
            setattr(turma, k, v)
        return self.save(db, turma)

    def soft_delete(self, db: Session, id: int, actor: Actor) -> None:
        ensure_staff(actor)
        turma = self.get(db, id, actor.academia_id)
        if not turma:
            raise NotFound("Turma não encontrada")
        if turma.deleted_at is not None:
            return

        futura = db.execute(
            select(Aula.id).where(
                Aula.turma_id == turma.id,
                Aula.academia_id == actor.academia_id,
                Aula.deleted_at.is_(None),
                Aula.status != AulaStatus.CANCELADA.value,
                Aula.data_inicio >= now_utc(),
            ).limit(1)
        ).scalar_one_or_none()
        if futura is not None:
            logger.info("Turma %s não removida: possui aulas futuras", turma.id)
            raise Conflict(
                "Turma possui aulas futuras. Cancele ou delete as aulas antes de remover a turma.",
                code="TURMA_COM_AULAS_FUTURAS",
            )

        turma.deleted_at = now_utc()
        turma.deleted_by = actor.id
        self.save(db, turma)
        logger.info("Turma %s removida por %s", turma.id, actor.id)

    def restore(self, db: Session, id: int, actor: Actor) -> Turma:
        ensure_staff(actor)
        turma = self.get(db, id, actor.academia_id)
        if not turma:
            raise NotFound("Turma não encontrada")
        if turma.deleted_at is None:
            raise Conflict("Turma não está deletada", code="NAO_DELETADO")

        conflito = db.execute(
            select(Turma.id).where(
                Turma.academia_id == actor.academia_id,
                Turma.deleted_at.is_(None),
                func.lower(Turma.nome) == turma.nome.lower(),
                Turma.id != turma.id,
            ).limit(1)
        ).scalar_one_or_none()
        if conflito is not None:
            raise Conflict(
                "Turma já existe ativa com o mesmo nome. Renomeie antes de restaurar.",
                code="NOME_DUPLICADO",
            )

        turma.deleted_at = None
        turma.deleted_by = None
        self.save(db, turma)
        logger.info("Turma %s restaurada por %s", turma.id, actor.id)
        return turma

    def _validate_refs(self, db: Session, academia_id: int, tipo_treino_id: Optional[int], instrutor_id: Optional[int]) -> None:
        if tipo_treino_id is not None:
            tipo = db.execute(
                select(TipoTreino.id).where(TipoTreino.id == tipo_treino_id, TipoTreino.academia_id == academia_id)
            ).scalar_one_or_none()
            if tipo is None:
                raise NotFound("Tipo de treino não encontrado")

        if instrutor_id is not None:
            instrutor = db.execute(
                select(User).where(User.id == instrutor_id, User.academia_id == academia_id)
            ).scalar_one_or_none()
            if not instrutor or not is_staff(parse_roles(instrutor.role_names)):
                raise NotFound("Instrutor não encontrado na academia ou sem papel de staff")


turma_crud = CRUDTurma(Turma)
