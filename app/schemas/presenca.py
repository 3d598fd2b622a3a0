from __future__ import annotations
from typing import List, Literal, Optional
from datetime import datetime
from pydantic import BaseModel, Field

from app.models.presenca import PresencaStatus, PresencaOrigem


# ---- check-in ----

class CheckinCreate(BaseModel):
    aula_id: int
    tipo: Literal["MANUAL", "QR"]
    qr_token: Optional[str] = None


class CheckinDisponivel(BaseModel):
    aula_id: int
    turma_nome: str
    data_inicio: datetime
    data_fim: datetime
    tipo_treino: Optional[str] = None
    status_aula: str
    ja_fez_checkin: bool


# ---- presença ----

class PresencaOut(BaseModel):
    id: int
    aula_id: int
    aluno_id: int
    status: PresencaStatus
    origem: PresencaOrigem
    criado_em: datetime
    registrado_por: Optional[int] = None
    decidido_em: Optional[datetime] = None
    decidido_por: Optional[int] = None
    decisao_observacao: Optional[str] = None

    model_config = {"from_attributes": True}


class PresencaPendente(BaseModel):
    id: int
    aluno_id: int
    aluno_nome: str
    aula_id: int
    turma_nome: str
    data_inicio: datetime
    origem: PresencaOrigem
    status: PresencaStatus = PresencaStatus.PENDENTE


class PresencaAulaItem(BaseModel):
    presenca_id: int
    aluno_id: int
    aluno_nome: str
    status: PresencaStatus
    origem: PresencaOrigem
    criado_em: datetime
    registrado_por: Optional[int] = None
    updated_at: Optional[datetime] = None
    decidido_em: Optional[datetime] = None
    decidido_por: Optional[int] = None
    decisao_observacao: Optional[str] = None


class HistoricoPresenca(BaseModel):
    presenca_id: int
    aula_id: int
    data_inicio: datetime
    turma_nome: str
    tipo_treino: Optional[str] = None
    status: PresencaStatus
    origem: PresencaOrigem


# ---- decisões ----

Decisao = Literal["APROVAR", "REJEITAR", "JUSTIFICAR"]


class DecisaoPresenca(BaseModel):
    decisao: Decisao
    observacao: Optional[str] = None


class DecisaoLote(BaseModel):
    ids: List[int] = Field(default_factory=list)
    decisao: Decisao
    observacao: Optional[str] = None


class IgnoradoLote(BaseModel):
    id: int
    motivo: str


class DecisaoLoteResult(BaseModel):
    processados: int
    atualizados: List[int] = []
    ignorados: List[IgnoradoLote] = []


class UpdatePresencaStatus(BaseModel):
    status: Literal["PRESENTE", "FALTA", "JUSTIFICADA", "AJUSTADO"]
