from enum import Enum
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import ForeignKey, String, DateTime, func
from app.db.base import Base

class MatriculaStatus(str, Enum):
    ATIVA = "ATIVA"
    PENDENTE = "PENDENTE"
    INATIVA = "INATIVA"
    CANCELADA = "CANCELADA"

class Matricula(Base):
    __tablename__ = "matriculas"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    academia_id: Mapped[int] = mapped_column(ForeignKey("academias.id"), index=True)
    usuario_id: Mapped[int] = mapped_column(ForeignKey("usuarios.id"), index=True)
    status: Mapped[str] = mapped_column(String(20), default=MatriculaStatus.PENDENTE.value)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    usuario = relationship("User")
