from enum import Enum
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import ForeignKey, String, Text, UniqueConstraint
from app.db.base import Base
from app.db.types import UTCDateTime
from app.core.timewindow import now_utc

class PresencaStatus(str, Enum):
    PENDENTE = "PENDENTE"
    PRESENTE = "PRESENTE"
    FALTA = "FALTA"
    JUSTIFICADA = "JUSTIFICADA"
    AJUSTADO = "AJUSTADO"

class PresencaOrigem(str, Enum):
    MANUAL = "MANUAL"
    QR_CODE = "QR_CODE"
    SISTEMA = "SISTEMA"

class Presenca(Base):
    __tablename__ = "presencas"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    academia_id: Mapped[int] = mapped_column(ForeignKey("academias.id"), index=True)
    aula_id: Mapped[int] = mapped_column(ForeignKey("aulas.id"), index=True)
    aluno_id: Mapped[int] = mapped_column(ForeignKey("usuarios.id"), index=True)
    status: Mapped[str] = mapped_column(String(20), default=PresencaStatus.PENDENTE.value)
    origem: Mapped[str] = mapped_column(String(20), default=PresencaOrigem.MANUAL.value)
    criado_em: Mapped[datetime] = mapped_column(UTCDateTime, default=now_utc)
    registrado_por: Mapped[Optional[int]] = mapped_column(ForeignKey("usuarios.id"), nullable=True)

    # auditoria da decisão
    decidido_em: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    decidido_por: Mapped[Optional[int]] = mapped_column(ForeignKey("usuarios.id"), nullable=True)
    decisao_observacao: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    updated_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True, onupdate=now_utc)

    aula = relationship("Aula")
    aluno = relationship("User", foreign_keys=[aluno_id])

    __table_args__ = (
        UniqueConstraint("aula_id", "aluno_id", "academia_id", name="uq_presenca_aula_aluno"),
    )
