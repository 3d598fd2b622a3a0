from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import relationship

from app.db.base import Base
from app.models.user_role import user_roles


class Role(Base):
    __tablename__ = "papeis"

    id = Column(Integer, primary_key=True, autoincrement=True)
    nome = Column(String(32), nullable=False, unique=True)

    # M2M: papeis <-> usuarios
    usuarios = relationship(
        "User",
        secondary=user_roles,
        back_populates="roles",
    )
