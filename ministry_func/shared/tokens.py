"""Stateless HMAC-SHA256 signed admin tokens.

Canonical tokens are JWT-shaped (``header.payload.signature``, base64url
without padding). The older compact form ``base64(payload).hexdigest`` is
still accepted by :meth:`TokenCodec.verify`.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

ROLES = ("super", "site")
UNAUTHORIZED = "Unauthorized"
_HEADER = {"alg": "HS256", "typ": "JWT"}


class AuthError(PermissionError):
    """Raised for missing/invalid credentials or tokens. Maps to HTTP 401."""

    def __init__(self, message: str = UNAUTHORIZED) -> None:
        super().__init__(message)


@dataclass(frozen=True)
class TokenClaims:
    subject: str
    role: str
    issued_at_millis: int

    def to_payload(self) -> Dict[str, Any]:
        return {"sub": self.subject, "role": self.role, "iat": self.issued_at_millis}


def _b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def _b64_decode(segment: str) -> bytes:
    """Decode standard or url-safe base64, tolerating stripped padding."""
    normalized = segment.replace("-", "+").replace("_", "/")
    normalized += "=" * (-len(normalized) % 4)
    return base64.b64decode(normalized, validate=True)


def _now_millis() -> int:
    return int(time.time() * 1000)


class TokenCodec:
    """Issue and verify signed admin tokens with a server-side secret."""

    def __init__(self, secret: str, max_age_seconds: Optional[int] = None) -> None:
        self._secret = (secret or "").encode("utf-8")
        self._max_age_millis = max_age_seconds * 1000 if max_age_seconds else None

    def _sign(self, data: str) -> bytes:
        return hmac.new(self._secret, data.encode("ascii"), hashlib.sha256).digest()

    def issue(self, subject: str, role: str, now_millis: Optional[int] = None) -> str:
        if not self._secret:
            raise ValueError("Token secret is not configured")
        if role not in ROLES:
            raise ValueError(f"Unknown role: {role!r}")

        claims = TokenClaims(subject, role, now_millis if now_millis is not None else _now_millis())
        header_b64 = _b64url_encode(json.dumps(_HEADER, separators=(",", ":")).encode("utf-8"))
        payload_b64 = _b64url_encode(json.dumps(claims.to_payload(), separators=(",", ":")).encode("utf-8"))
        signing_input = f"{header_b64}.{payload_b64}"
        return f"{signing_input}.{_b64url_encode(self._sign(signing_input))}"

    def verify(self, token: Optional[str], now_millis: Optional[int] = None) -> Optional[TokenClaims]:
        """Return the token's claims, or ``None`` for any kind of invalid token."""
        if not self._secret or not token or not isinstance(token, str):
            return None

        try:
            parts = token.strip().split(".")
            if len(parts) == 3:
                header_b64, payload_b64, signature_b64 = parts
                if not (header_b64 and payload_b64 and signature_b64):
                    return None
                # Compared in encoded form: decoding would ignore the unused low
                # bits of the final base64 character.
                expected = _b64url_encode(self._sign(f"{header_b64}.{payload_b64}"))
                supplied = signature_b64.replace("+", "-").replace("/", "_").rstrip("=")
            elif len(parts) == 2:
                payload_b64, signature_hex = parts
                if not (payload_b64 and signature_hex):
                    return None
                expected = self._sign(payload_b64).hex()
                supplied = signature_hex.lower()
            else:
                return None

            if not hmac.compare_digest(expected.encode("ascii"), supplied.encode("ascii", "replace")):
                return None

            payload = json.loads(_b64_decode(payload_b64).decode("utf-8"))
            claims = self._claims_from_payload(payload)
        except (ValueError, TypeError, binascii.Error, UnicodeDecodeError):
            return None

        if claims is None:
            return None
        if self._max_age_millis is not None:
            current = now_millis if now_millis is not None else _now_millis()
            if current - claims.issued_at_millis > self._max_age_millis:
                return None
        return claims

    @staticmethod
    def _claims_from_payload(payload: Any) -> Optional[TokenClaims]:
        if not isinstance(payload, dict):
            return None
        # Compact tokens from the blog admin carry ``username`` instead of ``sub``
        subject = payload.get("sub") or payload.get("username") or payload.get("user")
        # Role-less tokens get the least privileged role
        role = payload.get("role") or "site"
        issued = payload.get("iat")
        if not isinstance(subject, str) or not subject or role not in ROLES:
            return None
        if isinstance(issued, bool) or not isinstance(issued, int):
            return None
        return TokenClaims(subject=subject, role=role, issued_at_millis=issued)


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Extract the token from an ``Authorization: Bearer <token>`` header value."""
    if not authorization or not authorization.startswith("Bearer "):
        return None
    return authorization[len("Bearer "):].strip() or None
