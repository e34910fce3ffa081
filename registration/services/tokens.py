"""Bearer token codec: HS256 JWTs minted and checked with PyJWT."""

import logging
import secrets
import time
from collections.abc import Callable
from typing import Any

import jwt
from jwt.exceptions import (
    DecodeError,
    InvalidAlgorithmError,
    InvalidSignatureError,
    PyJWTError,
)

from registration.core.config import Settings
from registration.services.errors import (
    InvalidSignature,
    MalformedToken,
    TokenError,
    TokenExpired,
)

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
DEFAULT_VALIDITY_SECONDS = 86400

# Expiry is checked against the codec clock, not PyJWT's
_DECODE_OPTIONS = {
    "verify_signature": True,
    "verify_exp": False,
    "verify_iat": False,
    "verify_nbf": False,
    "require": ["sub", "iat", "exp"],
}


class TokenCodec:
    """Mint and validate bearer tokens.

    Claims: ``sub`` (account email), ``iat`` and ``exp`` as integer epoch
    seconds, and a random ``jti`` so tokens minted in the same second for the
    same subject are distinct strings.
    """

    def __init__(
        self,
        secret_key: str,
        validity_seconds: int = DEFAULT_VALIDITY_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        if not secret_key:
            raise ValueError("secret_key must not be empty")
        if validity_seconds <= 0:
            raise ValueError("validity_seconds must be positive")
        self._secret_key = secret_key
        self._validity_seconds = validity_seconds
        self._clock = clock

    @classmethod
    def from_settings(cls, config: Settings) -> "TokenCodec":
        return cls(
            secret_key=config.effective_jwt_secret_key,
            validity_seconds=config.jwt_expiration_seconds,
        )

    @property
    def validity_seconds(self) -> int:
        return self._validity_seconds

    def now(self) -> int:
        return int(self._clock())

    def issue(self, subject: str) -> str:
        """Sign and return a compact token for ``subject``."""
        if not subject:
            raise ValueError("subject must not be empty")
        issued_at = self.now()
        payload = {
            "sub": subject,
            "iat": issued_at,
            "exp": issued_at + self._validity_seconds,
            "jti": secrets.token_hex(16),
        }
        token = jwt.encode(payload, self._secret_key, algorithm=ALGORITHM)
        # PyJWT 2.x returns str; older type stubs may declare bytes
        return str(token)

    def _claims(self, token: str) -> dict[str, Any]:
        """Verify the signature and return the claims, expired or not."""
        if not token or not isinstance(token, str):
            raise MalformedToken()
        try:
            claims = jwt.decode(
                token,
                self._secret_key,
                algorithms=[ALGORITHM],
                options=_DECODE_OPTIONS,
            )
        except InvalidSignatureError as e:
            raise InvalidSignature() from e
        except InvalidAlgorithmError as e:
            # Unsigned ("none") or foreign-algorithm tokens cannot be verified
            raise InvalidSignature() from e
        except DecodeError as e:
            raise MalformedToken() from e
        except PyJWTError as e:
            logger.debug(f"Token rejected: {e}")
            raise MalformedToken() from e

        if not isinstance(claims.get("exp"), int) or not isinstance(claims.get("sub"), str):
            raise MalformedToken()
        return claims

    def expiry_of(self, token: str) -> int:
        """Return ``exp`` of a correctly signed token, even if it has expired."""
        return self._claims(token)["exp"]

    def subject_of(self, token: str) -> str:
        """Return ``sub`` of a correctly signed, unexpired token."""
        claims = self._claims(token)
        if self.now() >= claims["exp"]:
            raise TokenExpired()
        return claims["sub"]

    def validate(self, token: str, expected_subject: str) -> bool:
        """True only for a correctly signed, unexpired token for ``expected_subject``.

        Fails closed: any problem with the token yields False.
        """
        try:
            return self.subject_of(token) == expected_subject
        except TokenError:
            return False
