"""Geração e validação de tokens de QR Code de aula.

Tokens são opacos, de entropia total (32 bytes de ``secrets``), nunca lidos por
humanos; por isso não há alfabeto reduzido. Uma aula tem no máximo um token
vivo: emitir de novo sobrescreve o anterior.
"""
import base64
import hmac
import io
import secrets
from datetime import datetime, timedelta

import qrcode

from app.core.config import settings, QR_TTL_MINUTES_DEFAULT
from app.core.timewindow import as_utc, now_utc

QR_TOKEN_BYTES = 32

def generate_qr_token() -> str:
    return secrets.token_hex(QR_TOKEN_BYTES)

def qr_ttl_minutes() -> int:
    ttl = settings.QR_TTL_MINUTES
    return ttl if isinstance(ttl, int) and ttl > 0 else QR_TTL_MINUTES_DEFAULT

def qr_expiry(now: datetime | None = None) -> datetime:
    return (now or now_utc()) + timedelta(minutes=qr_ttl_minutes())

def token_matches(expected: str | None, supplied: str | None) -> bool:
    if not expected or not supplied:
        return False
    return hmac.compare_digest(expected.encode(), supplied.encode())

def token_expired(expires_at: datetime | None, now: datetime | None = None) -> bool:
    if expires_at is None:
        return True
    return as_utc(expires_at) <= (now or now_utc())

def qr_data_uri(text: str) -> str:
    """PNG do QR Code em data URI, pronto para exibir no painel do instrutor."""
    img = qrcode.make(text)
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    b64 = base64.b64encode(buf.getvalue()).decode("ascii")
    return f"data:image/png;base64,{b64}"
