from fastapi import Depends, Header, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.errors import Forbidden
from app.core.rbac import Actor, parse_roles
from app.core.tokens import decode_access
from app.db.session import get_db
from app.models.user import User

# ----------------------------------------------------------------------
# Lê o Bearer do header Authorization (sem usar OAuth2PasswordBearer)
# ----------------------------------------------------------------------
def get_bearer_token(authorization: str = Header(None, alias="Authorization")) -> str:
    if not authorization:
        raise HTTPException(status_code=401, detail="Missing Authorization header")
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(status_code=401, detail="Invalid Authorization header")
    return parts[1]

# ----------------------------------------------------------------------
# Usuário atual: tenant vem SEMPRE do token, nunca de path/corpo
# ----------------------------------------------------------------------
def get_current_user(
    token: str = Depends(get_bearer_token),
    db: Session = Depends(get_db),
) -> User:
    payload = decode_access(token)
    if not payload:
        raise HTTPException(status_code=401, detail="Invalid token")

    try:
        user_id = int(payload["sub"])
        academia_id = int(payload["tenant"])
    except (KeyError, TypeError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid token")

    user = db.execute(
        select(User).where(User.id == user_id, User.academia_id == academia_id)
    ).scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=401, detail="Usuário não encontrado na academia")
    return user


def get_current_actor(user: User = Depends(get_current_user)) -> Actor:
    # papéis vêm do banco; os do token são só informativos
    return Actor(id=user.id, academia_id=user.academia_id, roles=parse_roles(user.role_names))

# ----------------------------------------------------------------------
# Guardas por papel
# ----------------------------------------------------------------------
def require_staff(actor: Actor = Depends(get_current_actor)) -> Actor:
    if not actor.is_staff:
        raise Forbidden("Apenas instrutores, professores ou administradores")
    return actor


def require_aluno(actor: Actor = Depends(get_current_actor)) -> Actor:
    if not actor.is_aluno:
        raise Forbidden("Apenas alunos podem fazer check-in")
    return actor
