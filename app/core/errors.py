# app/core/errors.py
from __future__ import annotations
from typing import Any, Dict


class DomainError(Exception):
    """Erro de regra de negócio com código estável para o cliente."""

    status_code: int = 400
    default_code: str = "ERRO"

    def __init__(self, message: str, code: str | None = None, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details: Dict[str, Any] = details

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class InvalidInput(DomainError):
    status_code = 400
    default_code = "VALIDACAO"


class NotFound(DomainError):
    status_code = 404
    default_code = "NAO_ENCONTRADO"


class Forbidden(DomainError):
    status_code = 403
    default_code = "SEM_PERMISSAO"


class Conflict(DomainError):
    status_code = 409
    default_code = "CONFLITO"


class Unprocessable(DomainError):
    status_code = 422
    default_code = "NAO_PROCESSAVEL"
