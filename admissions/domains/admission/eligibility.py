# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Eligibility evaluation against a course rule.

The prerequisite check runs before the CGPA check and short-circuits it.
A CGPA that is missing or not a number never satisfies a minimum.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable

from admissions.domains.admission.rules import AdmissionRule, normalize_course


class EligibilityVerdict(str, Enum):
    """Outcome of checking a student against a rule."""

    PREREQUISITE_MISSING = "prerequisite_missing"
    CGPA_BELOW_MINIMUM = "cgpa_below_minimum"
    ELIGIBLE = "eligible"


def parse_cgpa(value: Any) -> float | None:
    """Parse a CGPA as entered on the profile.

    Args:
        value: Number, numeric string, or anything else.

    Returns:
        The CGPA as a float, or None when it is missing or not a finite
        number.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None

    if not math.isfinite(number):
        return None
    return number


def completed_subjects(semesters: Iterable[Any] | None) -> frozenset[str]:
    """Flatten the subjects of every semester record into a normalized set."""
    subjects: set[str] = set()
    for semester in semesters or ():
        if not isinstance(semester, dict):
            continue
        listed = semester.get("subjects") or ()
        if isinstance(listed, str):
            listed = (listed,)
        for subject in listed:
            if isinstance(subject, str) and subject.strip():
                subjects.add(normalize_course(subject))
    return frozenset(subjects)


@dataclass(frozen=True)
class StudentRecord:
    """Read-only academic view of a student.

    Attributes:
        uid: Student identifier.
        cgpa: Parsed CGPA, None when missing or malformed.
        completed_subjects: Normalized identifiers of completed courses.
    """

    uid: str
    cgpa: float | None
    completed_subjects: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def from_profile(
        cls,
        uid: str,
        cgpa: Any,
        semesters: Iterable[Any] | None,
    ) -> "StudentRecord":
        """Build a record from raw profile fields."""
        return cls(
            uid=uid,
            cgpa=parse_cgpa(cgpa),
            completed_subjects=completed_subjects(semesters),
        )

    def has_completed(self, course: str) -> bool:
        """Check whether a course appears in any semester record."""
        return normalize_course(course) in self.completed_subjects


def evaluate(student: StudentRecord, rule: AdmissionRule) -> EligibilityVerdict:
    """Check a student against a course rule.

    Args:
        student: Student academic record.
        rule: Resolved rule of the requested course.

    Returns:
        PREREQUISITE_MISSING if the rule's prerequisite is not completed,
        otherwise CGPA_BELOW_MINIMUM if the CGPA is missing or below the
        minimum, otherwise ELIGIBLE.
    """
    if rule.prerequisite and not student.has_completed(rule.prerequisite):
        return EligibilityVerdict.PREREQUISITE_MISSING

    if student.cgpa is None or student.cgpa < rule.min_cgpa:
        return EligibilityVerdict.CGPA_BELOW_MINIMUM

    return EligibilityVerdict.ELIGIBLE
