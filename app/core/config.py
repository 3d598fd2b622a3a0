# app/core/config.py
import os
from typing import ClassVar
from pydantic import BaseModel, Field

QR_TTL_MINUTES_DEFAULT = 5

def _default_database_url() -> str:
    data_dir = os.path.abspath(os.getenv("DATA_DIR", "./data"))
    os.makedirs(data_dir, exist_ok=True)
    return os.getenv("DATABASE_URL", f"sqlite:///{os.path.join(data_dir, 'academia.db')}")

def _positive_int(name: str, default: int) -> int:
    # valores inválidos ou não positivos caem no default
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default

def _flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}

class Settings(BaseModel):
    # Constante (não vira campo Pydantic)
    DATA_DIR: ClassVar[str] = os.path.abspath(os.getenv("DATA_DIR", "./data"))

    # Campos de configuração
    DATABASE_URL: str = Field(default_factory=_default_database_url)
    SECRET_KEY: str = Field(default_factory=lambda: os.getenv("SECRET_KEY", "CHANGE_ME_SUPER_SECRET"))
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default_factory=lambda: _positive_int("ACCESS_TOKEN_EXPIRE_MINUTES", 30))
    TIMEZONE: str = Field(default_factory=lambda: os.getenv("TIMEZONE", "America/Sao_Paulo"))
    QR_TTL_MINUTES: int = Field(default_factory=lambda: _positive_int("QR_TTL_MINUTES", QR_TTL_MINUTES_DEFAULT))
    AULA_DURACAO_PADRAO_MINUTOS: int = Field(default_factory=lambda: _positive_int("AULA_DURACAO_PADRAO_MINUTOS", 90))
    HISTORICO_LIMITE_PADRAO: int = Field(default_factory=lambda: _positive_int("HISTORICO_LIMITE_PADRAO", 50))
    HISTORICO_LIMITE_MAXIMO: int = Field(default_factory=lambda: _positive_int("HISTORICO_LIMITE_MAXIMO", 100))
    AUTO_MIGRATE: bool = Field(default_factory=lambda: _flag("AUTO_MIGRATE", True))
    LOG_LEVEL: str = Field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())

settings = Settings()
