from __future__ import annotations
from typing import List, Optional
from datetime import datetime, time
from pydantic import BaseModel, Field, field_validator


def _check_dias(v: Optional[List[int]]) -> Optional[List[int]]:
    if v is None:
        return v
    if any(d < 0 or d > 6 for d in v):
        raise ValueError("dias_semana aceita apenas 0 (Domingo) a 6 (Sábado)")
    return sorted(set(v))


class TurmaCreate(BaseModel):
    nome: str = Field(min_length=1, max_length=120)
    tipo_treino_id: int
    dias_semana: List[int] = Field(min_length=1)
    horario_padrao: time
    instrutor_padrao_id: Optional[int] = None

    @field_validator("dias_semana")
    @classmethod
    def valida_dias(cls, v: List[int]):
        return _check_dias(v)


class TurmaUpdate(BaseModel):
    nome: Optional[str] = Field(default=None, min_length=1, max_length=120)
    tipo_treino_id: Optional[int] = None
    dias_semana: Optional[List[int]] = Field(default=None, min_length=1)
    horario_padrao: Optional[time] = None
    instrutor_padrao_id: Optional[int] = None

    @field_validator("dias_semana")
    @classmethod
    def valida_dias_update(cls, v: Optional[List[int]]):
        return _check_dias(v)


class TurmaOut(BaseModel):
    id: int
    nome: str
    tipo_treino: str
    tipo_treino_cor: Optional[str] = None
    dias_semana: List[int]
    horario_padrao: str  # HH:MM, hora local
    instrutor_padrao_id: Optional[int] = None
    instrutor_padrao_nome: Optional[str] = None
    deleted_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, t) -> "TurmaOut":
        return cls(
            id=t.id,
            nome=t.nome,
            tipo_treino=t.tipo_treino.nome if t.tipo_treino else "",
            tipo_treino_cor=t.tipo_treino.cor_identificacao if t.tipo_treino else None,
            dias_semana=[int(d) for d in (t.dias_semana or [])],
            horario_padrao=t.horario_padrao.strftime("%H:%M"),
            instrutor_padrao_id=t.instrutor_padrao_id,
            instrutor_padrao_nome=t.instrutor.nome_completo if t.instrutor else None,
            deleted_at=t.deleted_at,
        )
