# app/api/v1/alunos.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_current_actor, get_db
from app.core.rbac import Actor
from app.crud.presenca import presenca_crud
from app.schemas.presenca import HistoricoPresenca

router = APIRouter()


@router.get("/{aluno_id}/historico-presencas", response_model=List[HistoricoPresenca])
def historico_presencas(
    aluno_id: int,
    from_: Optional[str] = Query(None, alias="from"),
    to: Optional[str] = Query(None),
    limit: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return presenca_crud.student_history(db, aluno_id, actor, from_=from_, to=to, limit=limit)
