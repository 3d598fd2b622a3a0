import os

# precisa vir antes de qualquer import de app.*
os.environ["AUTO_MIGRATE"] = "0"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret"
os.environ["TIMEZONE"] = "America/Sao_Paulo"

import datetime as dt
from typing import Iterable, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, select
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.core.rbac import Actor, parse_roles
from app.core.tokens import create_access_token
from app.db.base import Base
from app.db.session import get_db
from app.main import api
from app.models.academia import Academia
from app.models.aula import Aula, AulaStatus
from app.models.matricula import Matricula, MatriculaStatus
from app.models.role import Role
from app.models.tipo_treino import TipoTreino
from app.models.turma import Turma
from app.models.user import User

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

UTC = dt.timezone.utc


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


class Factory:
    """Cria linhas de apoio direto no banco de teste."""

    def __init__(self, db):
        self.db = db
        self._seq = 0

    def _next(self) -> int:
        self._seq += 1
        return self._seq

    def academia(self, timezone: Optional[str] = "America/Sao_Paulo") -> Academia:
        n = self._next()
        a = Academia(nome=f"Academia {n}", slug=f"academia-{n}", timezone=timezone)
        self.db.add(a); self.db.commit(); self.db.refresh(a)
        return a

    def role(self, nome: str) -> Role:
        r = self.db.execute(select(Role).where(Role.nome == nome)).scalar_one_or_none()
        if not r:
            r = Role(nome=nome)
            self.db.add(r); self.db.flush()
        return r

    def user(
        self,
        academia: Academia,
        roles: Iterable[str] = ("ALUNO",),
        *,
        nome: Optional[str] = None,
        matricula: Optional[str] = MatriculaStatus.ATIVA.value,
    ) -> User:
        n = self._next()
        u = User(academia_id=academia.id, nome_completo=nome or f"Usuario {n}", email=f"u{n}@teste")
        u.roles = [self.role(r) for r in roles]
        self.db.add(u); self.db.flush()
        if matricula is not None:
            self.db.add(Matricula(academia_id=academia.id, usuario_id=u.id, status=matricula))
        self.db.commit(); self.db.refresh(u)
        return u

    def staff(self, academia: Academia, role: str = "INSTRUTOR") -> User:
        return self.user(academia, roles=(role,), matricula=None)

    def tipo(self, academia: Academia, nome: str = "Muay Thai") -> TipoTreino:
        t = TipoTreino(academia_id=academia.id, nome=nome, cor_identificacao="#FF0000")
        self.db.add(t); self.db.commit(); self.db.refresh(t)
        return t

    def turma(
        self,
        academia: Academia,
        *,
        nome: str = "Turma A",
        dias: Iterable[int] = (1, 3),
        horario: dt.time = dt.time(19, 0),
        tipo: Optional[TipoTreino] = None,
    ) -> Turma:
        tipo = tipo or self.tipo(academia)
        t = Turma(
            academia_id=academia.id,
            nome=nome,
            tipo_treino_id=tipo.id,
            dias_semana=list(dias),
            horario_padrao=horario,
        )
        self.db.add(t); self.db.commit(); self.db.refresh(t)
        return t

    def aula(
        self,
        turma: Turma,
        inicio: Optional[dt.datetime] = None,
        *,
        duracao: int = 60,
        status: AulaStatus = AulaStatus.AGENDADA,
    ) -> Aula:
        inicio = inicio or dt.datetime.now(UTC).replace(microsecond=0)
        a = Aula(
            academia_id=turma.academia_id,
            turma_id=turma.id,
            data_inicio=inicio,
            data_fim=inicio + dt.timedelta(minutes=duracao),
            status=status.value,
        )
        self.db.add(a); self.db.commit(); self.db.refresh(a)
        return a


@pytest.fixture
def factory(db):
    return Factory(db)


def actor_for(user: User) -> Actor:
    return Actor(id=user.id, academia_id=user.academia_id, roles=parse_roles(user.role_names))


def auth_headers(user: User) -> dict:
    token = create_access_token(sub=user.id, tenant=user.academia_id, roles=user.role_names)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def client(db):
    def _get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    api.dependency_overrides[get_db] = _get_db
    try:
        yield TestClient(api)
    finally:
        api.dependency_overrides.clear()
