# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Authentication domain.

Tokens are issued by the external identity provider. This package only
verifies them and exposes the caller's identity claims.
"""

from admissions.domains.auth.tokens import (
    IdentityClaims,
    InvalidTokenError,
    TokenError,
    TokenExpiredError,
    TokenVerifier,
)

__all__ = [
    "IdentityClaims",
    "InvalidTokenError",
    "TokenError",
    "TokenExpiredError",
    "TokenVerifier",
]
