from sqlalchemy import Column, Integer, String, ForeignKey
from sqlalchemy.orm import relationship

from app.db.base import Base
from app.models.user_role import user_roles  # garante que a tabela exista


class User(Base):
    __tablename__ = "usuarios"

    id = Column(Integer, primary_key=True, autoincrement=True)
    academia_id = Column(Integer, ForeignKey("academias.id"), nullable=False, index=True)

    nome_completo = Column(String(160), nullable=False)
    email = Column(String(160), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="ATIVO")

    academia = relationship("Academia", back_populates="usuarios")
    roles = relationship("Role", secondary=user_roles, back_populates="usuarios", lazy="selectin")

    @property
    def role_names(self) -> list[str]:
        return [r.nome for r in (self.roles or [])]
