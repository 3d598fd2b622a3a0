# app/api/v1/router.py
from fastapi import APIRouter
from app.api.v1 import (
    turmas,
    aulas,
    checkin,
    presencas,
    alunos,
)

api_router = APIRouter()

# tenant vem do token; nenhuma rota carrega academia no path
api_router.include_router(turmas.router,    prefix="/turmas",    tags=["turmas"])
api_router.include_router(aulas.router,     prefix="/aulas",     tags=["aulas"])
api_router.include_router(checkin.router,   prefix="/checkin",   tags=["checkin"])
api_router.include_router(presencas.router, prefix="/presencas", tags=["presencas"])
api_router.include_router(alunos.router,    prefix="/alunos",    tags=["alunos"])
