# app/api/v1/checkin.py
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_aluno
from app.core.rbac import Actor
from app.crud.presenca import presenca_crud
from app.schemas.presenca import CheckinCreate, CheckinDisponivel, PresencaOut

router = APIRouter()


@router.get("/disponiveis", response_model=List[CheckinDisponivel])
def list_disponiveis(db: Session = Depends(get_db), actor: Actor = Depends(require_aluno)):
    return presenca_crud.list_available(db, actor)


@router.post("", response_model=PresencaOut, status_code=status.HTTP_201_CREATED)
def create_checkin(body: CheckinCreate, db: Session = Depends(get_db), actor: Actor = Depends(require_aluno)):
    # aluno_id é sempre o do token
    return presenca_crud.create_checkin(db, actor, body)
