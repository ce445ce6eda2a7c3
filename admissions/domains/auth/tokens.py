# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Bearer token verification.

Access tokens are signed by the identity provider with a shared key. The
verifier checks signature, expiry and (when configured) audience, then
exposes the subject and role claims.

Example:
    verifier = TokenVerifier(settings.identity)
    claims = verifier.verify(token)
    if claims.role == "admin":
        ...
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from jose import ExpiredSignatureError, JWTError, jwt

from admissions.core.config.settings import IdentitySettings
from admissions.utils.datetime import utc_now

logger = logging.getLogger(__name__)

# Claim names accepted for the caller's role, first match wins
_ROLE_CLAIMS = ("role", "user_type")
_DEFAULT_ROLE = "student"


class TokenError(Exception):
    """Base exception for token verification."""

    pass


class TokenExpiredError(TokenError):
    """Raised when a token has expired."""

    pass


class InvalidTokenError(TokenError):
    """Raised when a token is malformed, badly signed or lacks a subject."""

    pass


@dataclass(frozen=True)
class IdentityClaims:
    """Identity of the caller as stated by a verified token.

    Attributes:
        uid: Subject of the token.
        role: student, lecturer or admin.
        claims: All decoded claims.
    """

    uid: str
    role: str
    claims: dict[str, Any] = field(default_factory=dict)


class TokenVerifier:
    """Verifies access tokens issued by the identity provider."""

    def __init__(self, settings: IdentitySettings) -> None:
        """Initialize the verifier.

        Args:
            settings: Identity settings with key, algorithm and audience.
        """
        self._settings = settings

    def verify(self, token: str) -> IdentityClaims:
        """Decode and validate a token.

        Args:
            token: Encoded JWT.

        Returns:
            The caller's identity claims.

        Raises:
            TokenExpiredError: If the token has expired.
            InvalidTokenError: If the token is invalid.
        """
        options = {"verify_aud": self._settings.audience is not None}
        try:
            payload = jwt.decode(
                token,
                self._settings.secret_key.get_secret_value(),
                algorithms=[self._settings.algorithm],
                audience=self._settings.audience,
                options=options,
            )
        except ExpiredSignatureError:
            raise TokenExpiredError("Token has expired")
        except JWTError as e:
            logger.debug("Token decode failed: %s", str(e))
            raise InvalidTokenError(f"Invalid token: {str(e)}")

        uid = payload.get("sub")
        if not uid:
            raise InvalidTokenError("Token has no subject")

        role = _DEFAULT_ROLE
        for name in _ROLE_CLAIMS:
            if payload.get(name):
                role = str(payload[name])
                break

        return IdentityClaims(uid=str(uid), role=role, claims=payload)

    def issue(self, uid: str, role: str, expires_in_seconds: int = 3600) -> str:
        """Sign a token with the configured key.

        Used by tests and local tooling; production tokens come from the
        identity provider.
        """
        now = int(utc_now().timestamp())
        payload: dict[str, Any] = {
            "sub": uid,
            "role": role,
            "iat": now,
            "exp": now + expires_in_seconds,
        }
        if self._settings.audience is not None:
            payload["aud"] = self._settings.audience
        return jwt.encode(
            payload,
            self._settings.secret_key.get_secret_value(),
            algorithm=self._settings.algorithm,
        )
