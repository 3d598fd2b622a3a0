# app/services/notifications.py
"""Avisos aos alunos (fire-and-forget).

O envio real (e-mail, push) é de um colaborador externo. Aqui montamos a
mensagem e entregamos a um ``Notifier``; falhas são registradas e nunca
propagadas para quem chamou.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional, Protocol

from app.core.timewindow import resolve_timezone

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Destinatario:
    usuario_id: int
    nome: str
    email: str


@dataclass(frozen=True)
class AvisoCancelamento:
    aula_id: int
    turma_nome: str
    data_inicio: datetime
    timezone: Optional[str]
    motivo: Optional[str]
    observacao: Optional[str]
    destinatarios: List[Destinatario]

    def assunto(self) -> str:
        return f"Aula cancelada: {self.turma_nome}"

    def corpo(self, nome: str) -> str:
        local = self.data_inicio.astimezone(resolve_timezone(self.timezone))
        linhas = [
            f"Olá, {nome}.",
            f"A aula de {self.turma_nome} de {local:%d/%m/%Y às %H:%M} foi cancelada.",
        ]
        if self.motivo:
            linhas.append(f"Motivo: {self.motivo}")
        if self.observacao:
            linhas.append(self.observacao)
        return "\n".join(linhas)


class Notifier(Protocol):
    def send(self, to: str, subject: str, body: str) -> None: ...


class LogNotifier:
    """Notifier padrão: só registra no log."""

    def send(self, to: str, subject: str, body: str) -> None:
        logger.info("Aviso para %s: %s", to, subject)


notifier: Notifier = LogNotifier()


def destinatarios_de(users: Iterable) -> List[Destinatario]:
    return [Destinatario(usuario_id=u.id, nome=u.nome_completo, email=u.email) for u in users if u.email]


def notify_aula_cancelada(aviso: AvisoCancelamento, sender: Optional[Notifier] = None) -> int:
    """Envia o aviso a cada destinatário; retorna quantos foram entregues."""
    sender = sender or notifier
    enviados = 0
    for d in aviso.destinatarios:
        try:
            sender.send(d.email, aviso.assunto(), aviso.corpo(d.nome))
            enviados += 1
        except Exception:
            logger.warning("Falha ao avisar aluno %s sobre aula %s", d.usuario_id, aviso.aula_id, exc_info=True)
    logger.info("Cancelamento da aula %s: %s/%s avisos enviados", aviso.aula_id, enviados, len(aviso.destinatarios))
    return enviados
