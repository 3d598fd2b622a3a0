from datetime import datetime, time
from typing import List, Optional
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import ForeignKey, String, Time, JSON, DateTime, func
from app.db.base import Base
from app.db.types import UTCDateTime

class Turma(Base):
    __tablename__ = "turmas"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    academia_id: Mapped[int] = mapped_column(ForeignKey("academias.id"), index=True)
    nome: Mapped[str] = mapped_column(String(120))
    tipo_treino_id: Mapped[int] = mapped_column(ForeignKey("tipos_treino.id"))
    instrutor_padrao_id: Mapped[Optional[int]] = mapped_column(ForeignKey("usuarios.id"), nullable=True)
    # 0=Domingo ... 6=Sábado
    dias_semana: Mapped[List[int]] = mapped_column(JSON, default=list)
    horario_padrao: Mapped[time] = mapped_column(Time)

    deleted_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    deleted_by: Mapped[Optional[int]] = mapped_column(ForeignKey("usuarios.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    tipo_treino = relationship("TipoTreino", lazy="joined")
    instrutor = relationship("User", foreign_keys=[instrutor_padrao_id], lazy="joined")
