# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Business domains.

- admission: Enrollment request decisions, seat capacity, verification
- auth: Bearer token verification
- profile: Student academic profiles read by the admission engine
"""
