import logging
from datetime import datetime, timedelta
from typing import List, Optional
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import Conflict, Forbidden, InvalidInput, NotFound
from app.core.rbac import Actor, ensure_staff
from app.core.timewindow import (
    as_utc,
    local_instant,
    now_utc,
    parse_local_date,
    parse_local_time,
    range_bounds_utc,
    today_bounds_utc,
    weekday_sunday_first,
)
from app.crud.base import TenantCRUD, academia_timezone
from app.models.academia import Academia
from app.models.aula import Aula, AulaStatus
from app.models.presenca import Presenca
from app.models.turma import Turma
from app.models.user import User
from app.schemas.aula import (
    AulaCancel,
    AulaCreate,
    AulaLoteConflito,
    AulaQrCode,
    AulasLoteCreate,
    AulasLoteResult,
    AulaUpdate,
    ListAulasQuery,
)
from app.services.notifications import AvisoCancelamento, destinatarios_de
from app.services.qr import generate_qr_token, qr_data_uri, qr_expiry

logger = logging.getLogger(__name__)

MOTIVO_AULA_JA_EXISTE = "AULA_JA_EXISTE"


def _to_utc(value: datetime, tz: ZoneInfo) -> datetime:
    # sem fuso = hora local da academia
    if value.tzinfo is None:
        value = value.replace(tzinfo=tz)
    return as_utc(value)


def _ensure_date_order(inicio: datetime, fim: datetime) -> None:
    if as_utc(fim) <= as_utc(inicio):
        raise InvalidInput("data_fim deve ser maior que data_inicio", field="data_fim")


def _clear_qr(aula: Aula) -> None:
    aula.qr_token = None
    aula.qr_expires_at = None


class CRUDAula(TenantCRUD[Aula]):
    def _visible(self, academia_id: int):
        # aulas de turmas deletadas nunca aparecem
        return (
            self.scoped(academia_id)
            .join(Turma, Turma.id == Aula.turma_id)
            .where(Turma.deleted_at.is_(None))
        )

    def find(self, db: Session, id: int, academia_id: int, *, include_deleted: bool = False) -> Optional[Aula]:
        stmt = self._visible(academia_id).where(Aula.id == id)
        if not include_deleted:
            stmt = stmt.where(Aula.deleted_at.is_(None))
        return db.execute(stmt.limit(1)).unique().scalar_one_or_none()

    def _require(self, db: Session, id: int, actor: Actor, *, include_deleted: bool = False) -> Aula:
        aula = self.find(db, id, actor.academia_id, include_deleted=include_deleted)
        if not aula:
            raise NotFound("Aula não encontrada")
        return aula

    def _active_turma(self, db: Session, turma_id: int, academia_id: int) -> Turma:
        turma = db.execute(
            select(Turma).where(Turma.id == turma_id, Turma.academia_id == academia_id).limit(1)
        ).unique().scalar_one_or_none()
        if not turma:
            raise NotFound("Turma não encontrada")
        if turma.deleted_at is not None:
            raise Conflict("Turma deletada não pode receber aulas", code="TURMA_DELETADA")
        return turma

    def ensure_unique(
        self, db: Session, turma_id: int, data_inicio: datetime, academia_id: int, ignore_id: Optional[int] = None
    ) -> None:
        stmt = select(Aula.id).where(
            Aula.turma_id == turma_id,
            Aula.academia_id == academia_id,
            Aula.data_inicio == as_utc(data_inicio),
            Aula.deleted_at.is_(None),
        )
        if ignore_id is not None:
            stmt = stmt.where(Aula.id != ignore_id)
        if db.execute(stmt.limit(1)).scalar_one_or_none() is not None:
            raise Conflict("Já existe aula ativa para a turma neste horário", code="AULA_DUPLICADA")

    def _commit_unique(self, db: Session, aula: Aula) -> Aula:
        # a constraint do banco é a garantia final contra corridas
        try:
            return self.save(db, aula)
        except IntegrityError:
            db.rollback()
            logger.info("Aula duplicada barrada pela constraint (turma %s)", aula.turma_id)
            raise Conflict("Já existe aula ativa para a turma neste horário", code="AULA_DUPLICADA")

    # ------------------------------------------------------------------
    # Listagens
    # ------------------------------------------------------------------
    def list_today(self, db: Session, actor: Actor, now: Optional[datetime] = None) -> List[Aula]:
        tz = academia_timezone(db, actor.academia_id)
        start, end = today_bounds_utc(tz, now)
        stmt = (
            self._visible(actor.academia_id)
            .where(
                Aula.data_inicio >= start,
                Aula.data_inicio < end,
                Aula.status != AulaStatus.CANCELADA.value,
                Aula.deleted_at.is_(None),
            )
            .order_by(Aula.data_inicio.asc())
        )
        return list(db.execute(stmt).unique().scalars().all())

    def list(self, db: Session, actor: Actor, query: ListAulasQuery, now: Optional[datetime] = None) -> List[Aula]:
        if (query.only_deleted or query.include_deleted) and not actor.is_staff:
            raise Forbidden("Apenas staff pode listar aulas deletadas")

        stmt = self._visible(actor.academia_id)
        if query.only_deleted:
            stmt = stmt.where(Aula.deleted_at.is_not(None))
        elif not query.include_deleted:
            stmt = stmt.where(Aula.deleted_at.is_(None))
        if query.turma_id is not None:
            stmt = stmt.where(Aula.turma_id == query.turma_id)
        if query.status is not None:
            stmt = stmt.where(Aula.status == query.status.value)

        tz = academia_timezone(db, actor.academia_id)
        start, end = range_bounds_utc(query.from_, query.to, tz, now)
        if start is not None:
            stmt = stmt.where(Aula.data_inicio >= start)
        if end is not None:
            stmt = stmt.where(Aula.data_inicio < end)

        return list(db.execute(stmt.order_by(Aula.data_inicio.asc())).unique().scalars().all())

    def get_detail(self, db: Session, id: int, actor: Actor, *, include_deleted: bool = False) -> Aula:
        return self._require(db, id, actor, include_deleted=include_deleted and actor.is_staff)

    # ------------------------------------------------------------------
    # Criação
    # ------------------------------------------------------------------
    def create(self, db: Session, actor: Actor, body: AulaCreate) -> Aula:
        ensure_staff(actor)
        self._active_turma(db, body.turma_id, actor.academia_id)

        tz = academia_timezone(db, actor.academia_id)
        inicio, fim = _to_utc(body.data_inicio, tz), _to_utc(body.data_fim, tz)
        _ensure_date_order(inicio, fim)
        self.ensure_unique(db, body.turma_id, inicio, actor.academia_id)

        aula = Aula(
            academia_id=actor.academia_id,
            turma_id=body.turma_id,
            data_inicio=inicio,
            data_fim=fim,
            status=body.status.value,
        )
        self._commit_unique(db, aula)
        logger.info("Aula %s criada (turma %s, inicio %s)", aula.id, aula.turma_id, inicio.isoformat())
        return aula

    def create_batch(self, db: Session, actor: Actor, body: AulasLoteCreate) -> AulasLoteResult:
        ensure_staff(actor)

        from_date = parse_local_date(body.from_date, "from_date")
        to_date = parse_local_date(body.to_date, "to_date")
        if to_date < from_date:
            raise InvalidInput("to_date deve ser maior ou igual a from_date", field="to_date")

        turma = self._active_turma(db, body.turma_id, actor.academia_id)

        dias = body.dias_semana if body.dias_semana is not None else (turma.dias_semana or [])
        dias = {int(d) for d in dias}
        if not dias:
            raise InvalidInput(
                "dias_semana obrigatório (informe no corpo ou configure na turma)", field="dias_semana"
            )
        if any(d < 0 or d > 6 for d in dias):
            raise InvalidInput("dias_semana aceita apenas 0 (Domingo) a 6 (Sábado)", field="dias_semana")

        hora = parse_local_time(body.hora_inicio, "hora_inicio") if body.hora_inicio else turma.horario_padrao
        duracao = timedelta(minutes=body.duracao_minutos or settings.AULA_DURACAO_PADRAO_MINUTOS)
        tz = academia_timezone(db, actor.academia_id)

        candidatos = []
        dia = from_date
        while dia <= to_date:
            if weekday_sunday_first(dia) in dias:
                inicio = local_instant(dia, hora, tz)
                candidatos.append((inicio, inicio + duracao))
            dia += timedelta(days=1)

        existentes = set()
        if candidatos:
            rows = db.execute(
                select(Aula.data_inicio).where(
                    Aula.turma_id == turma.id,
                    Aula.academia_id == actor.academia_id,
                    Aula.deleted_at.is_(None),
                    Aula.data_inicio.in_([c[0] for c in candidatos]),
                )
            ).scalars().all()
            existentes = {as_utc(r) for r in rows}

        conflitos = [
            AulaLoteConflito(data_inicio=inicio, motivo=MOTIVO_AULA_JA_EXISTE)
            for inicio, _ in candidatos
            if inicio in existentes
        ]
        livres = [(inicio, fim) for inicio, fim in candidatos if inicio not in existentes]

        criadas = 0
        if livres:
            db.add_all([
                Aula(
                    academia_id=actor.academia_id,
                    turma_id=turma.id,
                    data_inicio=inicio,
                    data_fim=fim,
                    status=AulaStatus.AGENDADA.value,
                )
                for inicio, fim in livres
            ])
            try:
                db.commit()
                criadas = len(livres)
            except IntegrityError:
                # corrida com outra requisição: insere uma a uma e reporta as perdedoras
                db.rollback()
                logger.info("Lote da turma %s colidiu na constraint; inserindo individualmente", turma.id)
                for inicio, fim in livres:
                    db.add(Aula(
                        academia_id=actor.academia_id,
                        turma_id=turma.id,
                        data_inicio=inicio,
                        data_fim=fim,
                        status=AulaStatus.AGENDADA.value,
                    ))
                    try:
                        db.commit()
                        criadas += 1
                    except IntegrityError:
                        db.rollback()
                        conflitos.append(AulaLoteConflito(data_inicio=inicio, motivo=MOTIVO_AULA_JA_EXISTE))
                conflitos.sort(key=lambda c: c.data_inicio)

        logger.info(
            "Lote turma %s (%s..%s): %s criadas, %s ignoradas",
            turma.id, from_date, to_date, criadas, len(conflitos),
        )
        return AulasLoteResult(criadas=criadas, ignoradas=len(conflitos), conflitos=conflitos)

    # ------------------------------------------------------------------
    # Alterações
    # ------------------------------------------------------------------
    def update(self, db: Session, id: int, actor: Actor, body: AulaUpdate) -> Aula:
        ensure_staff(actor)
        aula = self._require(db, id, actor)

        data = body.model_dump(exclude_unset=True)
        tz = academia_timezone(db, actor.academia_id)
        novo_inicio = _to_utc(data["data_inicio"], tz) if data.get("data_inicio") is not None else None
        novo_fim = _to_utc(data["data_fim"], tz) if data.get("data_fim") is not None else None

        if novo_inicio is None and novo_fim is None:
            return aula

        _ensure_date_order(novo_inicio or aula.data_inicio, novo_fim or aula.data_fim)

        if novo_inicio is not None and novo_inicio != as_utc(aula.data_inicio):
            self.ensure_unique(db, aula.turma_id, novo_inicio, actor.academia_id, ignore_id=aula.id)

        if novo_inicio is not None:
            aula.data_inicio = novo_inicio
        if novo_fim is not None:
            aula.data_fim = novo_fim
        return self._commit_unique(db, aula)

    def issue_qr_code(self, db: Session, id: int, actor: Actor) -> AulaQrCode:
        ensure_staff(actor)
        aula = self._require(db, id, actor)
        if aula.status == AulaStatus.CANCELADA.value:
            raise Conflict("Aula cancelada não aceita QR Code", code="AULA_CANCELADA")
        # encerrada não recebe mais check-in por QR; um token novo só geraria presenças fora da aula
        if aula.status == AulaStatus.ENCERRADA.value:
            raise Conflict("Aula encerrada não aceita QR Code", code="AULA_ENCERRADA")

        # sobrescreve qualquer token anterior: só o último vale
        aula.qr_token = generate_qr_token()
        aula.qr_expires_at = qr_expiry()
        self.save(db, aula)
        logger.info("QR emitido para aula %s (expira %s)", aula.id, aula.qr_expires_at.isoformat())
        return AulaQrCode(
            aula_id=aula.id,
            qr_token=aula.qr_token,
            expires_at=aula.qr_expires_at,
            turma=aula.turma.nome,
            horario=aula.data_inicio,
            qr_image=qr_data_uri(aula.qr_token),
        )

    def cancel(self, db: Session, id: int, actor: Actor, body: Optional[AulaCancel] = None) -> Aula:
        ensure_staff(actor)
        aula = self._require(db, id, actor)
        if aula.status == AulaStatus.ENCERRADA.value:
            raise Conflict("Aula encerrada não pode ser cancelada", code="AULA_ENCERRADA")

        aula.status = AulaStatus.CANCELADA.value
        _clear_qr(aula)
        if body is not None:
            if body.motivo is not None:
                aula.motivo_cancelamento = body.motivo
            if body.observacao is not None:
                aula.observacao_cancelamento = body.observacao
        self.save(db, aula)
        logger.info("Aula %s cancelada por %s", aula.id, actor.id)
        return aula

    def end(self, db: Session, id: int, actor: Actor) -> Aula:
        ensure_staff(actor)
        aula = self._require(db, id, actor)
        if aula.status == AulaStatus.CANCELADA.value:
            raise Conflict("Aula cancelada não pode ser encerrada", code="AULA_CANCELADA")
        if aula.status == AulaStatus.ENCERRADA.value and aula.qr_token is None and aula.qr_expires_at is None:
            return aula

        aula.status = AulaStatus.ENCERRADA.value
        _clear_qr(aula)
        self.save(db, aula)
        logger.info("Aula %s encerrada por %s", aula.id, actor.id)
        return aula

    def soft_delete(self, db: Session, id: int, actor: Actor) -> None:
        ensure_staff(actor)
        aula = self._require(db, id, actor, include_deleted=True)
        if aula.deleted_at is None:
            aula.deleted_at = now_utc()
            aula.deleted_by = actor.id
        _clear_qr(aula)
        self.save(db, aula)
        logger.info("Aula %s removida por %s", aula.id, actor.id)

    def restore(self, db: Session, id: int, actor: Actor) -> Aula:
        ensure_staff(actor)
        aula = self._require(db, id, actor, include_deleted=True)
        if aula.deleted_at is None:
            raise Conflict("Aula não está deletada", code="NAO_DELETADO")

        self.ensure_unique(db, aula.turma_id, aula.data_inicio, actor.academia_id, ignore_id=aula.id)
        aula.deleted_at = None
        aula.deleted_by = None
        self._commit_unique(db, aula)
        logger.info("Aula %s restaurada por %s", aula.id, actor.id)
        return aula

    def students_of(self, db: Session, aula: Aula) -> List[User]:
        """Alunos com presença registrada na aula (destinatários de avisos)."""
        stmt = (
            select(User)
            .join(Presenca, Presenca.aluno_id == User.id)
            .where(Presenca.aula_id == aula.id, Presenca.academia_id == aula.academia_id)
            .order_by(User.id)
        )
        return list(db.execute(stmt).scalars().all())

    def cancellation_notice(self, db: Session, aula: Aula) -> AvisoCancelamento:
        tz_name = db.execute(
            select(Academia.timezone).where(Academia.id == aula.academia_id)
        ).scalar_one_or_none()
        return AvisoCancelamento(
            aula_id=aula.id,
            turma_nome=aula.turma.nome,
            data_inicio=aula.data_inicio,
            timezone=tz_name,
            motivo=aula.motivo_cancelamento,
            observacao=aula.observacao_cancelamento,
            destinatarios=destinatarios_de(self.students_of(db, aula)),
        )


aula_crud = CRUDAula(Aula)
