# app/api/v1/aulas.py
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Body, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_current_actor, get_db, require_staff
from app.core.rbac import Actor
from app.crud.aula import aula_crud
from app.crud.presenca import presenca_crud
from app.models.aula import AulaStatus
from app.models.presenca import PresencaStatus
from app.schemas.aula import (
    AulaCancel,
    AulaCreate,
    AulaOut,
    AulaQrCode,
    AulasLoteCreate,
    AulasLoteResult,
    AulaUpdate,
    ListAulasQuery,
    PresencaManualCreate,
)
from app.schemas.presenca import PresencaAulaItem, PresencaOut
from app.services.notifications import notify_aula_cancelada

router = APIRouter()


# ---------------- listagens ----------------

@router.get("/hoje", response_model=List[AulaOut])
def list_aulas_hoje(db: Session = Depends(get_db), actor: Actor = Depends(require_staff)):
    return [AulaOut.from_model(a, include_qr=True) for a in aula_crud.list_today(db, actor)]


@router.get("", response_model=List[AulaOut])
def list_aulas(
    turma_id: Optional[int] = Query(None),
    status_: Optional[AulaStatus] = Query(None, alias="status"),
    from_: Optional[str] = Query(None, alias="from", description="YYYY-MM-DD ou ISO-8601"),
    to: Optional[str] = Query(None, description="YYYY-MM-DD ou ISO-8601"),
    include_deleted: bool = Query(False),
    only_deleted: bool = Query(False),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    query = ListAulasQuery(
        turma_id=turma_id,
        status=status_,
        from_=from_,
        to=to,
        include_deleted=include_deleted,
        only_deleted=only_deleted,
    )
    return [AulaOut.from_model(a, include_qr=actor.is_staff) for a in aula_crud.list(db, actor, query)]


@router.get("/{aula_id}", response_model=AulaOut)
def get_aula(
    aula_id: int,
    include_deleted: bool = Query(False),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    aula = aula_crud.get_detail(db, aula_id, actor, include_deleted=include_deleted)
    return AulaOut.from_model(aula, include_qr=actor.is_staff)


# ---------------- criação / edição ----------------

@router.post("", response_model=AulaOut, status_code=status.HTTP_201_CREATED)
def create_aula(body: AulaCreate, db: Session = Depends(get_db), actor: Actor = Depends(require_staff)):
    return AulaOut.from_model(aula_crud.create(db, actor, body), include_qr=True)


@router.post("/lote", response_model=AulasLoteResult, status_code=status.HTTP_201_CREATED)
def create_aulas_lote(body: AulasLoteCreate, db: Session = Depends(get_db), actor: Actor = Depends(require_staff)):
    return aula_crud.create_batch(db, actor, body)


@router.patch("/{aula_id}", response_model=AulaOut)
def update_aula(
    aula_id: int,
    body: AulaUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_staff),
):
    return AulaOut.from_model(aula_crud.update(db, aula_id, actor, body), include_qr=True)


# ---------------- ciclo de vida ----------------

@router.get("/{aula_id}/qrcode", response_model=AulaQrCode)
def get_qrcode(aula_id: int, db: Session = Depends(get_db), actor: Actor = Depends(require_staff)):
    return aula_crud.issue_qr_code(db, aula_id, actor)


@router.post("/{aula_id}/cancelar", response_model=AulaOut)
def cancel_aula(
    aula_id: int,
    background: BackgroundTasks,
    body: Optional[AulaCancel] = Body(None),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_staff),
):
    aula = aula_crud.cancel(db, aula_id, actor, body)
    if body is not None and body.notificar_alunos:
        # dados montados agora; o envio roda depois da resposta, sem sessão
        background.add_task(notify_aula_cancelada, aula_crud.cancellation_notice(db, aula))
    return AulaOut.from_model(aula, include_qr=True)


@router.post("/{aula_id}/encerrar", response_model=AulaOut)
def end_aula(aula_id: int, db: Session = Depends(get_db), actor: Actor = Depends(require_staff)):
    return AulaOut.from_model(aula_crud.end(db, aula_id, actor), include_qr=True)


@router.delete("/{aula_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_aula(aula_id: int, db: Session = Depends(get_db), actor: Actor = Depends(require_staff)):
    aula_crud.soft_delete(db, aula_id, actor)


@router.post("/{aula_id}/restaurar", response_model=AulaOut)
def restore_aula(aula_id: int, db: Session = Depends(get_db), actor: Actor = Depends(require_staff)):
    return AulaOut.from_model(aula_crud.restore(db, aula_id, actor), include_qr=True)


# ---------------- presenças da aula ----------------

@router.get("/{aula_id}/presencas", response_model=List[PresencaAulaItem])
def list_presencas_aula(
    aula_id: int,
    status_: Optional[PresencaStatus] = Query(None, alias="status"),
    q: Optional[str] = Query(None, description="Busca pelo nome do aluno"),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_staff),
):
    return presenca_crud.list_by_aula(db, aula_id, actor, status=status_, q=q)


@router.post("/{aula_id}/presencas", response_model=PresencaOut, status_code=status.HTTP_201_CREATED)
def register_presenca(
    aula_id: int,
    body: PresencaManualCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_staff),
):
    return presenca_crud.register_presence(db, aula_id, actor, body)
