from enum import Enum
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import ForeignKey, String, Text, DateTime, Index, CheckConstraint, func, text
from app.db.base import Base
from app.db.types import UTCDateTime

class AulaStatus(str, Enum):
    AGENDADA = "AGENDADA"
    ENCERRADA = "ENCERRADA"
    CANCELADA = "CANCELADA"

class Aula(Base):
    __tablename__ = "aulas"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    academia_id: Mapped[int] = mapped_column(ForeignKey("academias.id"), index=True)
    turma_id: Mapped[int] = mapped_column(ForeignKey("turmas.id"), index=True)
    data_inicio: Mapped[datetime] = mapped_column(UTCDateTime)
    data_fim: Mapped[datetime] = mapped_column(UTCDateTime)
    status: Mapped[str] = mapped_column(String(20), default=AulaStatus.AGENDADA.value)

    # token e expiração andam sempre juntos
    qr_token: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    qr_expires_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    motivo_cancelamento: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    observacao_cancelamento: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    deleted_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    deleted_by: Mapped[Optional[int]] = mapped_column(ForeignKey("usuarios.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    turma = relationship("Turma", lazy="joined")

    __table_args__ = (
        Index(
            "uq_aulas_turma_inicio_ativa",
            "turma_id", "academia_id", "data_inicio",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
            sqlite_where=text("deleted_at IS NULL"),
        ),
        CheckConstraint("data_fim > data_inicio", name="data_fim_maior_que_inicio"),
    )
