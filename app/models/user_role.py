from sqlalchemy import Table, Column, ForeignKey, UniqueConstraint
from app.db.base import Base

user_roles = Table(
    "usuarios_papeis",
    Base.metadata,
    Column("usuario_id", ForeignKey("usuarios.id"), primary_key=True),
    Column("papel_id", ForeignKey("papeis.id"), primary_key=True),
    UniqueConstraint("usuario_id", "papel_id", name="uq_usuario_papel"),
)
