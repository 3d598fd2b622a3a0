import logging
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import and_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import Conflict, Forbidden, InvalidInput, NotFound, Unprocessable
from app.core.rbac import Actor, ensure_staff
from app.core.timewindow import now_utc, optional_bounds_utc, range_bounds_utc, today_bounds_utc
from app.crud.aula import aula_crud
from app.crud.base import TenantCRUD, academia_timezone
from app.models.aula import Aula, AulaStatus
from app.models.matricula import Matricula, MatriculaStatus
from app.models.presenca import Presenca, PresencaOrigem, PresencaStatus
from app.models.tipo_treino import TipoTreino
from app.models.turma import Turma
from app.models.user import User
from app.schemas.aula import PresencaManualCreate
from app.schemas.presenca import (
    CheckinCreate,
    CheckinDisponivel,
    DecisaoLote,
    DecisaoLoteResult,
    DecisaoPresenca,
    HistoricoPresenca,
    IgnoradoLote,
    PresencaAulaItem,
    PresencaPendente,
    UpdatePresencaStatus,
)
from app.services.qr import token_expired, token_matches

logger = logging.getLogger(__name__)

DECISAO_STATUS: Dict[str, PresencaStatus] = {
    "APROVAR": PresencaStatus.PRESENTE,
    "REJEITAR": PresencaStatus.FALTA,
    "JUSTIFICAR": PresencaStatus.JUSTIFICADA,
}

MOTIVO_JA_DECIDIDA = "JA_DECIDIDA"
MOTIVO_NAO_ENCONTRADA = "NAO_ENCONTRADA"


class CRUDPresenca(TenantCRUD[Presenca]):
    # ------------------------------------------------------------------
    # Check-in
    # ------------------------------------------------------------------
    def ensure_active_enrollment(self, db: Session, aluno_id: int, academia_id: int) -> None:
        ativa = db.execute(
            select(Matricula.id).where(
                Matricula.usuario_id == aluno_id,
                Matricula.academia_id == academia_id,
                Matricula.status == MatriculaStatus.ATIVA.value,
            ).limit(1)
        ).scalar_one_or_none()
        if ativa is not None:
            return

        existe = db.execute(select(User.id).where(User.id == aluno_id).limit(1)).scalar_one_or_none()
        if existe is None:
            raise NotFound("Aluno não encontrado")
        raise Forbidden("Aluno não possui matrícula ativa na academia", code="MATRICULA_INATIVA")

    def create_checkin(self, db: Session, actor: Actor, body: CheckinCreate) -> Presenca:
        self.ensure_active_enrollment(db, actor.id, actor.academia_id)

        qr_token = (body.qr_token or "").strip()
        if body.tipo == "QR" and not qr_token:
            raise InvalidInput("qr_token é obrigatório para check-in via QR", field="qr_token")

        aula = aula_crud.find(db, body.aula_id, actor.academia_id)
        if not aula:
            if aula_crud.tenant_of(db, body.aula_id) not in (None, actor.academia_id):
                raise Forbidden("Aula não pertence à academia do usuário", code="TENANT_DIFERENTE")
            raise NotFound("Aula não encontrada")

        if aula.status == AulaStatus.CANCELADA.value:
            raise Unprocessable("Aula cancelada para check-in", code="AULA_CANCELADA")

        ja_existe = db.execute(
            select(Presenca.id).where(
                Presenca.aula_id == aula.id,
                Presenca.aluno_id == actor.id,
                Presenca.academia_id == actor.academia_id,
            ).limit(1)
        ).scalar_one_or_none()
        if ja_existe is not None:
            logger.info("Check-in duplicado: aluno %s aula %s", actor.id, aula.id)
            raise Unprocessable("Aluno já realizou check-in nesta aula", code="CHECKIN_DUPLICADO")

        if body.tipo == "QR":
            if not token_matches(aula.qr_token, qr_token):
                logger.info("QR inválido para aula %s", aula.id)
                raise Unprocessable("QR code inválido para a aula", code="QR_INVALIDO")
            if token_expired(aula.qr_expires_at):
                logger.info("QR expirado para aula %s", aula.id)
                raise Unprocessable("QR code expirado", code="QR_EXPIRADO")

        # QR prova presença física; manual aguarda confirmação do staff
        presenca = Presenca(
            academia_id=actor.academia_id,
            aula_id=aula.id,
            aluno_id=actor.id,
            status=(PresencaStatus.PRESENTE if body.tipo == "QR" else PresencaStatus.PENDENTE).value,
            origem=(PresencaOrigem.QR_CODE if body.tipo == "QR" else PresencaOrigem.MANUAL).value,
            registrado_por=actor.id,
        )
        try:
            self.save(db, presenca)
        except IntegrityError:
            db.rollback()
            logger.info("Check-in duplicado barrado pela constraint: aluno %s aula %s", actor.id, aula.id)
            raise Unprocessable("Aluno já realizou check-in nesta aula", code="CHECKIN_DUPLICADO")

        logger.info("Check-in %s: aluno %s aula %s (%s)", presenca.id, actor.id, aula.id, presenca.origem)
        return presenca

    def list_available(self, db: Session, actor: Actor, now: Optional[datetime] = None) -> List[CheckinDisponivel]:
        self.ensure_active_enrollment(db, actor.id, actor.academia_id)
        tz = academia_timezone(db, actor.academia_id)
        start, end = today_bounds_utc(tz, now)

        stmt = (
            select(Aula, Turma.nome, TipoTreino.nome, Presenca.id)
            .join(Turma, Turma.id == Aula.turma_id)
            .outerjoin(TipoTreino, TipoTreino.id == Turma.tipo_treino_id)
            .outerjoin(
                Presenca,
                and_(
                    Presenca.aula_id == Aula.id,
                    Presenca.aluno_id == actor.id,
                    Presenca.academia_id == Aula.academia_id,
                ),
            )
            .where(
                Aula.academia_id == actor.academia_id,
                Aula.data_inicio >= start,
                Aula.data_inicio < end,
                Aula.status != AulaStatus.CANCELADA.value,
                Aula.deleted_at.is_(None),
                Turma.deleted_at.is_(None),
            )
            .order_by(Aula.data_inicio.asc())
        )
        return [
            CheckinDisponivel(
                aula_id=aula.id,
                turma_nome=turma_nome,
                data_inicio=aula.data_inicio,
                data_fim=aula.data_fim,
                tipo_treino=tipo_nome,
                status_aula=aula.status,
                ja_fez_checkin=presenca_id is not None,
            )
            for aula, turma_nome, tipo_nome, presenca_id in db.execute(stmt).unique().all()
        ]

    # ------------------------------------------------------------------
    # Decisões do staff
    # ------------------------------------------------------------------
    def _require_for_decision(self, db: Session, id: int, actor: Actor) -> Presenca:
        presenca = self.get(db, id, actor.academia_id)
        if presenca:
            return presenca
        if self.tenant_of(db, id) is None:
            raise NotFound("Presença não encontrada")
        raise Forbidden("Presença não pertence à academia do usuário", code="TENANT_DIFERENTE")

    def list_pending(
        self,
        db: Session,
        actor: Actor,
        *,
        aula_id: Optional[int] = None,
        from_: Optional[str] = None,
        to: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> List[PresencaPendente]:
        ensure_staff(actor)
        stmt = (
            select(Presenca, User.nome_completo, Turma.nome, Aula.data_inicio)
            .join(Aula, Aula.id == Presenca.aula_id)
            .join(Turma, Turma.id == Aula.turma_id)
            .join(User, User.id == Presenca.aluno_id)
            .where(
                Presenca.academia_id == actor.academia_id,
                Aula.academia_id == actor.academia_id,
                Presenca.status == PresencaStatus.PENDENTE.value,
                Aula.deleted_at.is_(None),
            )
        )
        if aula_id is not None:
            stmt = stmt.where(Presenca.aula_id == aula_id)
            start, end = optional_bounds_utc(from_, to, academia_timezone(db, actor.academia_id))
        else:
            start, end = range_bounds_utc(from_, to, academia_timezone(db, actor.academia_id), now)
        if start is not None:
            stmt = stmt.where(Aula.data_inicio >= start)
        if end is not None:
            stmt = stmt.where(Aula.data_inicio < end)

        rows = db.execute(stmt.order_by(Aula.data_inicio.asc(), Presenca.id.asc())).all()
        return [
            PresencaPendente(
                id=p.id,
                aluno_id=p.aluno_id,
                aluno_nome=aluno_nome,
                aula_id=p.aula_id,
                turma_nome=turma_nome,
                data_inicio=data_inicio,
                origem=p.origem,
            )
            for p, aluno_nome, turma_nome, data_inicio in rows
        ]

    def decide(self, db: Session, id: int, actor: Actor, body: DecisaoPresenca) -> Presenca:
        ensure_staff(actor)
        presenca = self._require_for_decision(db, id, actor)
        if presenca.status != PresencaStatus.PENDENTE.value:
            logger.info("Decisão recusada: presença %s já está %s", presenca.id, presenca.status)
            raise Conflict("Presença já decidida", code=MOTIVO_JA_DECIDIDA, status=presenca.status)

        agora = now_utc()
        presenca.status = DECISAO_STATUS[body.decisao].value
        presenca.decidido_em = agora
        presenca.decidido_por = actor.id
        presenca.decisao_observacao = body.observacao
        presenca.updated_at = agora
        self.save(db, presenca)
        logger.info("Presença %s decidida (%s) por %s", presenca.id, body.decisao, actor.id)
        return presenca

    def decide_batch(self, db: Session, actor: Actor, body: DecisaoLote) -> DecisaoLoteResult:
        ensure_staff(actor)
        ids = list(dict.fromkeys(body.ids))
        if not ids:
            return DecisaoLoteResult(processados=0)

        encontrados = dict(
            db.execute(
                select(Presenca.id, Presenca.status).where(
                    Presenca.id.in_(ids),
                    Presenca.academia_id == actor.academia_id,
                )
            ).all()
        )

        elegiveis: List[int] = []
        for pid in ids:
            if encontrados.get(pid) == PresencaStatus.PENDENTE.value:
                elegiveis.append(pid)

        decididas = set()
        if elegiveis:
            agora = now_utc()
            # vale o que o UPDATE alterou: decidida por outro no meio do caminho vira JA_DECIDIDA
            decididas = set(
                db.execute(
                    update(Presenca)
                    .where(
                        Presenca.id.in_(elegiveis),
                        Presenca.academia_id == actor.academia_id,
                        Presenca.status == PresencaStatus.PENDENTE.value,
                    )
                    .values(
                        status=DECISAO_STATUS[body.decisao].value,
                        decidido_em=agora,
                        decidido_por=actor.id,
                        decisao_observacao=body.observacao,
                        updated_at=agora,
                    )
                    .returning(Presenca.id)
                ).scalars().all()
            )
            db.commit()

        atualizados: List[int] = []
        ignorados: List[IgnoradoLote] = []
        for pid in ids:
            if pid in decididas:
                atualizados.append(pid)
            elif pid not in encontrados:
                ignorados.append(IgnoradoLote(id=pid, motivo=MOTIVO_NAO_ENCONTRADA))
            else:
                ignorados.append(IgnoradoLote(id=pid, motivo=MOTIVO_JA_DECIDIDA))

        logger.info(
            "Lote de decisões (%s) por %s: %s atualizadas, %s ignoradas",
            body.decisao, actor.id, len(atualizados), len(ignorados),
        )
        return DecisaoLoteResult(processados=len(atualizados), atualizados=atualizados, ignorados=ignorados)

    def update_status(self, db: Session, id: int, actor: Actor, body: UpdatePresencaStatus) -> Presenca:
        ensure_staff(actor)
        presenca = self._require_for_decision(db, id, actor)
        presenca.status = body.status
        presenca.registrado_por = actor.id
        presenca.updated_at = now_utc()
        self.save(db, presenca)
        logger.info("Presença %s ajustada para %s por %s", presenca.id, body.status, actor.id)
        return presenca

    # ------------------------------------------------------------------
    # Consultas por aula / aluno
    # ------------------------------------------------------------------
    def list_by_aula(
        self,
        db: Session,
        aula_id: int,
        actor: Actor,
        *,
        status: Optional[PresencaStatus] = None,
        q: Optional[str] = None,
    ) -> List[PresencaAulaItem]:
        ensure_staff(actor)
        if not aula_crud.find(db, aula_id, actor.academia_id):
            raise NotFound("Aula não encontrada")

        stmt = (
            select(Presenca, User.nome_completo)
            .join(User, User.id == Presenca.aluno_id)
            .where(Presenca.aula_id == aula_id, Presenca.academia_id == actor.academia_id)
        )
        if status is not None:
            stmt = stmt.where(Presenca.status == status.value)
        if q and q.strip():
            stmt = stmt.where(User.nome_completo.ilike(f"%{q.strip()}%"))

        return [
            PresencaAulaItem(
                presenca_id=p.id,
                aluno_id=p.aluno_id,
                aluno_nome=nome,
                status=p.status,
                origem=p.origem,
                criado_em=p.criado_em,
                registrado_por=p.registrado_por,
                updated_at=p.updated_at,
                decidido_em=p.decidido_em,
                decidido_por=p.decidido_por,
                decisao_observacao=p.decisao_observacao,
            )
            for p, nome in db.execute(stmt.order_by(User.nome_completo.asc())).all()
        ]

    def register_presence(self, db: Session, aula_id: int, actor: Actor, body: PresencaManualCreate) -> Presenca:
        ensure_staff(actor)
        aula = aula_crud.find(db, aula_id, actor.academia_id)
        if not aula:
            raise NotFound("Aula não encontrada")
        if aula.status == AulaStatus.CANCELADA.value:
            raise Unprocessable("Aula cancelada não recebe presenças", code="AULA_CANCELADA")

        aluno = db.execute(
            select(User.id).where(User.id == body.aluno_id, User.academia_id == actor.academia_id)
        ).scalar_one_or_none()
        if aluno is None:
            raise NotFound("Aluno não encontrado")

        duplicada = Conflict("Aluno já possui presença nesta aula", code="PRESENCA_DUPLICADA")
        existe = db.execute(
            select(Presenca.id).where(
                Presenca.aula_id == aula.id,
                Presenca.aluno_id == body.aluno_id,
                Presenca.academia_id == actor.academia_id,
            ).limit(1)
        ).scalar_one_or_none()
        if existe is not None:
            raise duplicada

        agora = now_utc()
        presenca = Presenca(
            academia_id=actor.academia_id,
            aula_id=aula.id,
            aluno_id=body.aluno_id,
            status=body.status,
            origem=PresencaOrigem.SISTEMA.value,
            registrado_por=actor.id,
            decidido_em=agora,
            decidido_por=actor.id,
            decisao_observacao=body.observacao,
        )
        try:
            self.save(db, presenca)
        except IntegrityError:
            db.rollback()
            raise duplicada
        logger.info("Presença %s registrada pelo staff %s na aula %s", presenca.id, actor.id, aula.id)
        return presenca

    def student_history(
        self,
        db: Session,
        aluno_id: int,
        actor: Actor,
        *,
        from_: Optional[str] = None,
        to: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[HistoricoPresenca]:
        if not actor.is_staff and actor.id != aluno_id:
            raise Forbidden("Aluno só pode acessar o próprio histórico")

        aluno = db.execute(
            select(User.id).where(User.id == aluno_id, User.academia_id == actor.academia_id)
        ).scalar_one_or_none()
        if aluno is None:
            raise NotFound("Aluno não encontrado")

        start, end = optional_bounds_utc(from_, to, academia_timezone(db, actor.academia_id))
        limite = limit or settings.HISTORICO_LIMITE_PADRAO
        if limite < 1:
            raise InvalidInput("limit deve ser positivo", field="limit")
        limite = min(limite, settings.HISTORICO_LIMITE_MAXIMO)

        stmt = (
            select(Presenca, Aula.data_inicio, Turma.nome, TipoTreino.nome)
            .join(Aula, Aula.id == Presenca.aula_id)
            .join(Turma, Turma.id == Aula.turma_id)
            .outerjoin(TipoTreino, TipoTreino.id == Turma.tipo_treino_id)
            .where(
                Presenca.aluno_id == aluno_id,
                Presenca.academia_id == actor.academia_id,
                Aula.academia_id == actor.academia_id,
            )
        )
        if start is not None:
            stmt = stmt.where(Aula.data_inicio >= start)
        if end is not None:
            stmt = stmt.where(Aula.data_inicio < end)

        rows = db.execute(stmt.order_by(Aula.data_inicio.desc()).limit(limite)).all()
        return [
            HistoricoPresenca(
                presenca_id=p.id,
                aula_id=p.aula_id,
                data_inicio=data_inicio,
                turma_nome=turma_nome,
                tipo_treino=tipo_nome,
                status=p.status,
                origem=p.origem,
            )
            for p, data_inicio, turma_nome, tipo_nome in rows
        ]


presenca_crud = CRUDPresenca(Presenca)
