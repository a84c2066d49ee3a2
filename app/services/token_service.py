"""JWT access token creation and validation (ES256).

The academy does not log anyone in: an identity provider issues the
access tokens, this service only verifies them.  Claims it relies on:

  sub   user id (UUID string)
  role  admin | sub-admin | user

Key management:
  - JWT_PUBLIC_KEY_FILE set  → verify with that PEM public key; minting
    is disabled (create_access_token raises RuntimeError)
  - unset (dev/test)         → an ephemeral EC key pair is generated on
    import so tests and local scripts can mint their own tokens
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta
from pathlib import Path

import jwt
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import load_pem_public_key

from app.core.config import SETTINGS

ALGORITHM = "ES256"
ISSUER = "vx-academy"
AUDIENCE = "vx-academy"
ACCESS_TOKEN_TTL_MIN = 15

if SETTINGS.jwt_public_key_file:
    _private_key: ec.EllipticCurvePrivateKey | None = None
    _public_key = load_pem_public_key(
        Path(SETTINGS.jwt_public_key_file).read_bytes()
    )
else:
    _private_key = ec.generate_private_key(ec.SECP256R1())
    _public_key = _private_key.public_key()


def create_access_token(*, sub: str, role: str = "user") -> str:
    """Build and sign an access token.  Dev/test only."""
    if _private_key is None:
        raise RuntimeError("token minting is disabled when JWT_PUBLIC_KEY_FILE is set")
    now = datetime.now(UTC)
    payload = {
        "sub": sub,
        "iss": ISSUER,
        "aud": AUDIENCE,
        "exp": now + timedelta(minutes=ACCESS_TOKEN_TTL_MIN),
        "iat": now,
        "jti": str(uuid.uuid4()),
        "role": role,
    }
    return jwt.encode(payload, _private_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Verify signature and claims, return the payload.

    Pins algorithm to ES256 to prevent alg:none and alg-switching attacks.
    Validates exp, iss, and aud automatically via PyJWT options.

    Raises jwt.ExpiredSignatureError, jwt.InvalidTokenError on failure.
    """
    return jwt.decode(
        token,
        _public_key,
        algorithms=[ALGORITHM],
        issuer=ISSUER,
        audience=AUDIENCE,
        options={"require": ["sub", "exp", "iat", "role"]},
    )
