# app/core/tokens.py
from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, Optional

from jose import jwt, JWTError
from app.core.config import settings

ALGO = settings.ALGORITHM

def _now() -> datetime:
    return datetime.now(timezone.utc)

def _exp(minutes: int = 15) -> datetime:
    return _now() + timedelta(minutes=minutes)

def create_access_token(*, sub: int, tenant: int, roles: Iterable[str] = (), expires_minutes: int | None = None) -> str:
    """Access token curto (minutos), assinado com SECRET_KEY.

    A emissão em produção é feita pelo provedor de identidade; aqui serve para
    ambientes de desenvolvimento e testes.
    """
    expire_min = expires_minutes if expires_minutes is not None else settings.ACCESS_TOKEN_EXPIRE_MINUTES
    payload: Dict[str, Any] = {
        "type": "access",
        "sub": str(sub),
        "tenant": str(tenant),
        "roles": [str(r) for r in roles],
        "jti": uuid.uuid4().hex,
        "iat": int(_now().timestamp()),
        "exp": int(_exp(expire_min).timestamp()),
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=ALGO)

def decode_access(token: str) -> Optional[Dict[str, Any]]:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGO])
    except JWTError:
        return None
    if not isinstance(payload, dict):
        return None
    if payload.get("type") != "access":
        return None
    if not payload.get("sub") or not payload.get("tenant"):
        return None
    return payload
