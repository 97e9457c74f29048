# ecotour_svc/core/jwks.py
from __future__ import annotations
import base64
import hashlib
import json
from functools import lru_cache

from cryptography.hazmat.primitives.serialization import load_pem_public_key
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey

from .config import get_settings
settings = get_settings()

def _b64url(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")

def _b64url_uint(i: int) -> str:
    return _b64url(i.to_bytes((i.bit_length() + 7) // 8, "big"))

@lru_cache(maxsize=1)
def _public_members() -> dict[str, str]:
    pub = load_pem_public_key(settings.jwt_public_key.encode("utf-8"))
    if not isinstance(pub, RSAPublicKey):
        raise TypeError("Public key must be RSA")
    numbers = pub.public_numbers()
    return {"e": _b64url_uint(numbers.e), "kty": "RSA", "n": _b64url_uint(numbers.n)}

def key_id() -> str:
    """RFC 7638 thumbprint, so the kid changes whenever the signing key does."""
    canonical = json.dumps(_public_members(), separators=(",", ":"), sort_keys=True)
    return _b64url(hashlib.sha256(canonical.encode("utf-8")).digest())

def build_rsa_jwk() -> dict:
    return {**_public_members(), "alg": "RS256", "use": "sig", "kid": key_id()}

def jwks_document() -> dict:
    return {"keys": [build_rsa_jwk()]}
