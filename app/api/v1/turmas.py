# app/api/v1/turmas.py
from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_current_actor, get_db, require_staff
from app.core.rbac import Actor
from app.crud.turma import turma_crud
from app.schemas.turma import TurmaCreate, TurmaOut, TurmaUpdate

router = APIRouter()


@router.get("", response_model=List[TurmaOut])
def list_turmas(
    include_deleted: bool = Query(False),
    only_deleted: bool = Query(False),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    rows = turma_crud.list(db, actor, include_deleted=include_deleted, only_deleted=only_deleted)
    return [TurmaOut.from_model(t) for t in rows]


@router.get("/{turma_id}", response_model=TurmaOut)
def get_turma(turma_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    return TurmaOut.from_model(turma_crud.get_active(db, turma_id, actor))


@router.post("", response_model=TurmaOut, status_code=status.HTTP_201_CREATED)
def create_turma(body: TurmaCreate, db: Session = Depends(get_db), actor: Actor = Depends(require_staff)):
    return TurmaOut.from_model(turma_crud.create(db, actor, body))


@router.patch("/{turma_id}", response_model=TurmaOut)
def update_turma(
    turma_id: int,
    body: TurmaUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_staff),
):
    return TurmaOut.from_model(turma_crud.update(db, turma_id, actor, body))


@router.delete("/{turma_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_turma(turma_id: int, db: Session = Depends(get_db), actor: Actor = Depends(require_staff)):
    turma_crud.soft_delete(db, turma_id, actor)


@router.post("/{turma_id}/restaurar", response_model=TurmaOut)
def restore_turma(turma_id: int, db: Session = Depends(get_db), actor: Actor = Depends(require_staff)):
    return TurmaOut.from_model(turma_crud.restore(db, turma_id, actor))
