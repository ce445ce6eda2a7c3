# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Course admission rules.

A rule names the prerequisite a student must have completed, the CGPA
needed for normal admission, the higher CGPA that still admits a student
once the course is full, and the seat limit. Courses without an entry use
the default rule.

The catalog is immutable and is injected into the admission service at
construction. It can be loaded from a YAML file:

    default:
      min_cgpa: 7.0
      strict_cgpa: 8.0
      seat_limit: 80
    courses:
      advanced data structures:
        prerequisite: data structures
        min_cgpa: 7.5
        strict_cgpa: 8.5
        seat_limit: 80
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

import yaml

logger = logging.getLogger(__name__)


class RuleCatalogError(Exception):
    """Raised when a rule catalog file cannot be loaded or is malformed."""

    def __init__(self, path: Path, reason: str) -> None:
        """Initialize RuleCatalogError.

        Args:
            path: Path to the catalog file.
            reason: Description of what is wrong with it.
        """
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid rule catalog '{path}': {reason}")


def normalize_course(course: str) -> str:
    """Normalize a course identifier for comparison and storage."""
    return course.strip().lower()


@dataclass(frozen=True)
class AdmissionRule:
    """Admission policy of one course.

    Attributes:
        prerequisite: Normalized course that must be completed first, if any.
        min_cgpa: Minimum CGPA for admission.
        strict_cgpa: CGPA that still admits a student once seats run out.
        seat_limit: Enrollments admitted before the strict tier applies.
    """

    prerequisite: str | None
    min_cgpa: float
    strict_cgpa: float
    seat_limit: int

    def __post_init__(self) -> None:
        if self.seat_limit <= 0:
            raise ValueError(f"seat_limit must be positive, got {self.seat_limit}")
        if self.strict_cgpa < self.min_cgpa:
            raise ValueError(
                f"strict_cgpa {self.strict_cgpa} is below min_cgpa {self.min_cgpa}"
            )
        if self.prerequisite is not None:
            prerequisite = normalize_course(self.prerequisite)
            object.__setattr__(self, "prerequisite", prerequisite or None)


DEFAULT_RULE = AdmissionRule(
    prerequisite=None,
    min_cgpa=7.0,
    strict_cgpa=8.0,
    seat_limit=80,
)


class RuleCatalog:
    """Immutable mapping from normalized course to admission rule.

    Example:
        >>> catalog = RuleCatalog.builtin()
        >>> catalog.resolve("Advanced Data Structures").prerequisite
        'data structures'
        >>> catalog.resolve("pottery") is catalog.default
        True
    """

    def __init__(
        self,
        rules: Mapping[str, AdmissionRule] | None = None,
        default: AdmissionRule = DEFAULT_RULE,
    ) -> None:
        normalized = {normalize_course(course): rule for course, rule in (rules or {}).items()}
        self._rules: Mapping[str, AdmissionRule] = MappingProxyType(normalized)
        self._default = default

    @classmethod
    def builtin(cls) -> "RuleCatalog":
        """Catalog shipped with the service."""
        return cls(
            {
                "advanced data structures": AdmissionRule(
                    prerequisite="data structures",
                    min_cgpa=7.5,
                    strict_cgpa=8.5,
                    seat_limit=80,
                ),
                "advanced machine learning": AdmissionRule(
                    prerequisite="machine learning",
                    min_cgpa=7.5,
                    strict_cgpa=8.5,
                    seat_limit=80,
                ),
            }
        )

    @property
    def default(self) -> AdmissionRule:
        """Rule applied to courses without an entry."""
        return self._default

    @property
    def courses(self) -> tuple[str, ...]:
        """Normalized identifiers of courses with their own rule."""
        return tuple(sorted(self._rules))

    def resolve(self, course: str) -> AdmissionRule:
        """Look up the rule for a course. Never fails.

        Args:
            course: Course identifier in any letter case.

        Returns:
            The course's rule, or the default rule for unlisted courses.
        """
        rule = self._rules.get(normalize_course(course))
        if rule is None:
            return self._default
        return rule

    def __contains__(self, course: object) -> bool:
        return isinstance(course, str) and normalize_course(course) in self._rules

    def __len__(self) -> int:
        return len(self._rules)


def _rule_from_mapping(data: Any, base: AdmissionRule, path: Path, where: str) -> AdmissionRule:
    """Build a rule from a YAML mapping, inheriting missing fields from base."""
    if not isinstance(data, dict):
        raise RuleCatalogError(path, f"{where} must be a mapping")

    unknown = set(data) - {"prerequisite", "min_cgpa", "strict_cgpa", "seat_limit"}
    if unknown:
        raise RuleCatalogError(path, f"{where} has unknown keys: {', '.join(sorted(unknown))}")

    try:
        return AdmissionRule(
            prerequisite=data.get("prerequisite", base.prerequisite),
            min_cgpa=float(data.get("min_cgpa", base.min_cgpa)),
            strict_cgpa=float(data.get("strict_cgpa", base.strict_cgpa)),
            seat_limit=int(data.get("seat_limit", base.seat_limit)),
        )
    except (TypeError, ValueError) as e:
        raise RuleCatalogError(path, f"{where}: {e}") from e


def load_rule_catalog(path: Path) -> RuleCatalog:
    """Load a rule catalog from a YAML file.

    Course entries inherit thresholds they leave out from the file's
    ``default`` section; the prerequisite is never inherited.

    Args:
        path: Path to the YAML catalog.

    Returns:
        The loaded catalog.

    Raises:
        RuleCatalogError: If the file is missing, unreadable or malformed.
    """
    if not path.is_file():
        raise RuleCatalogError(path, "File does not exist")

    try:
        parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise RuleCatalogError(path, f"Cannot read file: {e}") from e
    except yaml.YAMLError as e:
        raise RuleCatalogError(path, f"Invalid YAML syntax: {e}") from e

    if parsed is None:
        parsed = {}
    if not isinstance(parsed, dict):
        raise RuleCatalogError(path, f"root must be a mapping, got {type(parsed).__name__}")

    default = DEFAULT_RULE
    if "default" in parsed:
        default = _rule_from_mapping(parsed["default"], DEFAULT_RULE, path, "default")
        if default.prerequisite is not None:
            raise RuleCatalogError(path, "default rule cannot require a prerequisite")

    courses = parsed.get("courses") or {}
    if not isinstance(courses, dict):
        raise RuleCatalogError(path, "courses must be a mapping")

    rules = {
        str(course): _rule_from_mapping(entry, default, path, f"course '{course}'")
        for course, entry in courses.items()
    }

    logger.info("Loaded rule catalog from %s: %d courses", path, len(rules))
    return RuleCatalog(rules, default=default)
