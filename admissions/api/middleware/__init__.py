# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API middleware."""

from admissions.api.middleware.auth import AuthMiddleware, CurrentUser, get_current_user

__all__ = ["AuthMiddleware", "CurrentUser", "get_current_user"]
