from __future__ import annotations
from typing import List, Literal, Optional
from datetime import datetime
from pydantic import BaseModel, Field

from app.models.aula import AulaStatus


class AulaCreate(BaseModel):
    turma_id: int
    data_inicio: datetime
    data_fim: datetime
    status: AulaStatus = AulaStatus.AGENDADA


class AulaUpdate(BaseModel):
    # status muda apenas por /cancelar e /encerrar
    data_inicio: Optional[datetime] = None
    data_fim: Optional[datetime] = None


class AulasLoteCreate(BaseModel):
    turma_id: int
    from_date: str = Field(description="Data inicial YYYY-MM-DD")
    to_date: str = Field(description="Data final YYYY-MM-DD (inclusiva)")
    dias_semana: Optional[List[int]] = Field(
        default=None, description="0=Domingo ... 6=Sábado; vazio usa os dias da turma"
    )
    hora_inicio: Optional[str] = Field(default=None, description="HH:MM; vazio usa horario_padrao da turma")
    duracao_minutos: Optional[int] = Field(default=None, ge=1)


class AulaLoteConflito(BaseModel):
    data_inicio: datetime
    motivo: str


class AulasLoteResult(BaseModel):
    criadas: int
    ignoradas: int
    conflitos: List[AulaLoteConflito] = []


class AulaCancel(BaseModel):
    motivo: Optional[str] = Field(default=None, max_length=200)
    observacao: Optional[str] = None
    notificar_alunos: bool = False


class AulaQrCode(BaseModel):
    aula_id: int
    qr_token: str
    expires_at: datetime
    turma: str
    horario: datetime
    qr_image: Optional[str] = None  # data:image/png;base64


class AulaOut(BaseModel):
    id: int
    turma_id: int
    turma_nome: str
    turma_horario_padrao: Optional[str] = None
    turma_dias_semana: Optional[List[int]] = None
    data_inicio: datetime
    data_fim: datetime
    status: AulaStatus
    tipo_treino: Optional[str] = None
    instrutor_padrao_id: Optional[int] = None
    instrutor_nome: Optional[str] = None
    qr_token: Optional[str] = None
    qr_expires_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, a, include_qr: bool = False) -> "AulaOut":
        t = a.turma
        return cls(
            id=a.id,
            turma_id=a.turma_id,
            turma_nome=t.nome,
            turma_horario_padrao=t.horario_padrao.strftime("%H:%M") if t.horario_padrao else None,
            turma_dias_semana=[int(d) for d in (t.dias_semana or [])],
            data_inicio=a.data_inicio,
            data_fim=a.data_fim,
            status=AulaStatus(a.status),
            tipo_treino=t.tipo_treino.nome if t.tipo_treino else None,
            instrutor_padrao_id=t.instrutor_padrao_id,
            instrutor_nome=t.instrutor.nome_completo if t.instrutor else None,
            qr_token=a.qr_token if include_qr else None,
            qr_expires_at=a.qr_expires_at if include_qr else None,
            deleted_at=a.deleted_at,
        )


class ListAulasQuery(BaseModel):
    turma_id: Optional[int] = None
    status: Optional[AulaStatus] = None
    from_: Optional[str] = Field(default=None, alias="from")
    to: Optional[str] = None
    include_deleted: bool = False
    only_deleted: bool = False

    model_config = {"populate_by_name": True}


class PresencaManualCreate(BaseModel):
    aluno_id: int
    status: Literal["PRESENTE", "FALTA"] = "PRESENTE"
    observacao: Optional[str] = None
