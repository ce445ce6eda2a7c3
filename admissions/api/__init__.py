# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""HTTP API for the admission backend.

Run with:
    uvicorn admissions.api.app:create_app --factory
"""
