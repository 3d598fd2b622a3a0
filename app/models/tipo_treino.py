from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import ForeignKey, String
from app.db.base import Base

class TipoTreino(Base):
    __tablename__ = "tipos_treino"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    academia_id: Mapped[int] = mapped_column(ForeignKey("academias.id"), index=True)
    nome: Mapped[str] = mapped_column(String(80))
    cor_identificacao: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
