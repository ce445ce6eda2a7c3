# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Admission domain.

Decides enrollment requests against per-course rules, seat limits and the
face verification service.
"""

from admissions.domains.admission.capacity import (
    CapacityCoordinator,
    CapacityDecision,
    CapacityOutcome,
    classify,
)
from admissions.domains.admission.eligibility import (
    EligibilityVerdict,
    StudentRecord,
    evaluate,
    parse_cgpa,
)
from admissions.domains.admission.rules import (
    DEFAULT_RULE,
    AdmissionRule,
    RuleCatalog,
    RuleCatalogError,
    load_rule_catalog,
    normalize_course,
)
from admissions.domains.admission.service import (
    AdmissionService,
    AdmissionServiceError,
    CapacityConflictError,
    RequestAlreadyDecidedError,
    RequestNotFoundError,
    StudentNotFoundError,
    ValidationFailureError,
)
from admissions.domains.admission.verification import (
    VerificationClient,
    VerificationResult,
    Verifier,
)

__all__ = [
    # Rules
    "AdmissionRule",
    "DEFAULT_RULE",
    "RuleCatalog",
    "RuleCatalogError",
    "load_rule_catalog",
    "normalize_course",
    # Eligibility
    "EligibilityVerdict",
    "StudentRecord",
    "evaluate",
    "parse_cgpa",
    # Capacity
    "CapacityCoordinator",
    "CapacityDecision",
    "CapacityOutcome",
    "classify",
    # Verification
    "VerificationClient",
    "VerificationResult",
    "Verifier",
    # Service
    "AdmissionService",
    "AdmissionServiceError",
    "CapacityConflictError",
    "RequestAlreadyDecidedError",
    "RequestNotFoundError",
    "StudentNotFoundError",
    "ValidationFailureError",
]
