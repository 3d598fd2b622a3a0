# app/api/v1/presencas.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_staff
from app.core.rbac import Actor
from app.crud.presenca import presenca_crud
from app.schemas.presenca import (
    DecisaoLote,
    DecisaoLoteResult,
    DecisaoPresenca,
    PresencaOut,
    PresencaPendente,
    UpdatePresencaStatus,
)

router = APIRouter()


@router.get("/pendencias", response_model=List[PresencaPendente])
def list_pendencias(
    aula_id: Optional[int] = Query(None),
    from_: Optional[str] = Query(None, alias="from"),
    to: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_staff),
):
    return presenca_crud.list_pending(db, actor, aula_id=aula_id, from_=from_, to=to)


@router.post("/pendencias/lote", response_model=DecisaoLoteResult)
def decidir_lote(body: DecisaoLote, db: Session = Depends(get_db), actor: Actor = Depends(require_staff)):
    return presenca_crud.decide_batch(db, actor, body)


@router.patch("/{presenca_id}/decisao", response_model=PresencaOut)
def decidir(
    presenca_id: int,
    body: DecisaoPresenca,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_staff),
):
    return presenca_crud.decide(db, presenca_id, actor, body)


@router.patch("/{presenca_id}/status", response_model=PresencaOut)
def atualizar_status(
    presenca_id: int,
    body: UpdatePresencaStatus,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_staff),
):
    return presenca_crud.update_status(db, presenca_id, actor, body)
