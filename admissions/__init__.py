"""Course Admissions Backend.

Enrollment approval for course registration: per-course admission rules,
seat capacity with a strict CGPA tier, waitlisting, and approvals gated on
external face verification.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
