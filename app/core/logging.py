"""
Configuração centralizada de logging.

Um único handler em stdout (padrão para containers); os módulos usam
``logging.getLogger(__name__)`` e herdam a formatação daqui.
"""
import logging
import sys

from app.core.config import settings

LOG_FORMAT = "[%(asctime)s] %(levelname)s in %(name)s: %(message)s"

def setup_logging(level: str | None = None) -> None:
    root = logging.getLogger()
    root.setLevel(level or settings.LOG_LEVEL)

    # Evita handlers duplicados quando o módulo é recarregado (uvicorn --reload, testes)
    if any(getattr(h, "_academia_handler", False) for h in root.handlers):
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._academia_handler = True  # type: ignore[attr-defined]
    root.addHandler(handler)

    # uvicorn já imprime o acesso; silencia o ruído do SQLAlchemy por padrão
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
