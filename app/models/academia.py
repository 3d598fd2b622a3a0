from typing import Optional
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import String, DateTime, func
from app.db.base import Base

class Academia(Base):
    __tablename__ = "academias"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    nome: Mapped[str] = mapped_column(String(160))
    slug: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    # fuso IANA; nulo = settings.TIMEZONE
    timezone: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    usuarios = relationship("User", back_populates="academia")
