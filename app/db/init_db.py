# app/db/init_db.py
import datetime as dt

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.rbac import Papel
from app.models.academia import Academia
from app.models.matricula import Matricula, MatriculaStatus
from app.models.role import Role
from app.models.tipo_treino import TipoTreino
from app.models.turma import Turma
from app.models.user import User

ROLE_NAMES = [p.value for p in Papel]

def init_db(db: Session) -> None:
    roles = {r.nome: r for r in db.scalars(select(Role)).all()}
    for name in ROLE_NAMES:
        if name not in roles:
            r = Role(nome=name)
            db.add(r); db.flush()
            roles[name] = r

    academia = db.scalar(select(Academia).where(Academia.slug == "demo"))
    if not academia:
        academia = Academia(nome="Academia Demo", slug="demo", timezone="America/Sao_Paulo")
        db.add(academia); db.flush()

    admin = db.scalar(select(User).where(User.academia_id == academia.id, User.email == "admin@demo"))
    if not admin:
        admin = User(academia_id=academia.id, nome_completo="Admin Demo", email="admin@demo")
        db.add(admin); db.flush()
        admin.roles.append(roles[Papel.ADMIN.value])

    aluno = db.scalar(select(User).where(User.academia_id == academia.id, User.email == "aluno@demo"))
    if not aluno:
        aluno = User(academia_id=academia.id, nome_completo="Aluno Demo", email="aluno@demo")
        db.add(aluno); db.flush()
        aluno.roles.append(roles[Papel.ALUNO.value])
        db.add(Matricula(academia_id=academia.id, usuario_id=aluno.id, status=MatriculaStatus.ATIVA.value))

    tipo = db.scalar(select(TipoTreino).where(TipoTreino.academia_id == academia.id))
    if not tipo:
        tipo = TipoTreino(academia_id=academia.id, nome="Jiu-Jitsu", cor_identificacao="#1E88E5")
        db.add(tipo); db.flush()
        db.add(Turma(
            academia_id=academia.id,
            nome="Jiu-Jitsu Noite",
            tipo_treino_id=tipo.id,
            instrutor_padrao_id=admin.id,
            dias_semana=[1, 3, 5],
            horario_padrao=dt.time(19, 0),
        ))

    db.commit()
