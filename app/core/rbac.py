# app/core/rbac.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Iterable

from app.core.errors import Forbidden


class Papel(str, Enum):
    ALUNO = "ALUNO"
    INSTRUTOR = "INSTRUTOR"
    PROFESSOR = "PROFESSOR"
    ADMIN = "ADMIN"
    TI = "TI"  # super-admin


STAFF_ROLES: FrozenSet[Papel] = frozenset({Papel.INSTRUTOR, Papel.PROFESSOR, Papel.ADMIN, Papel.TI})


def parse_roles(names: Iterable[str]) -> FrozenSet[Papel]:
    """Converte nomes vindos do banco/token; nomes desconhecidos são ignorados."""
    out = set()
    for name in names:
        try:
            out.add(Papel(str(name).upper()))
        except ValueError:
            continue
    return frozenset(out)


def is_staff(roles: Iterable[Papel]) -> bool:
    return bool(STAFF_ROLES & set(roles))


@dataclass(frozen=True)
class Actor:
    """Usuário autenticado: tenant sempre vem daqui, nunca do corpo da requisição."""

    id: int
    academia_id: int
    roles: FrozenSet[Papel] = field(default_factory=frozenset)

    @property
    def is_staff(self) -> bool:
        return is_staff(self.roles)

    @property
    def is_aluno(self) -> bool:
        return Papel.ALUNO in self.roles


def ensure_staff(actor: Actor) -> None:
    if not actor.is_staff:
        raise Forbidden("Apenas staff pode executar esta ação")
