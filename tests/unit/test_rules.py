# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the admission rule catalog."""

from pathlib import Path

import pytest

from admissions.domains.admission.rules import (
    DEFAULT_RULE,
    AdmissionRule,
    RuleCatalog,
    RuleCatalogError,
    load_rule_catalog,
    normalize_course,
)


class TestAdmissionRule:
    """Tests for AdmissionRule validation."""

    def test_prerequisite_is_normalized(self) -> None:
        """Test prerequisite is stored trimmed and lowercased."""
        rule = AdmissionRule("  Data Structures ", 7.5, 8.5, 80)

        assert rule.prerequisite == "data structures"

    def test_blank_prerequisite_becomes_none(self) -> None:
        """Test a blank prerequisite means no prerequisite."""
        rule = AdmissionRule("   ", 7.0, 8.0, 80)

        assert rule.prerequisite is None

    def test_rejects_non_positive_seat_limit(self) -> None:
        """Test seat limit must be positive."""
        with pytest.raises(ValueError, match="seat_limit"):
            AdmissionRule(None, 7.0, 8.0, 0)

    def test_rejects_strict_below_minimum(self) -> None:
        """Test strict CGPA cannot be below the minimum."""
        with pytest.raises(ValueError, match="strict_cgpa"):
            AdmissionRule(None, 8.0, 7.0, 80)

    def test_default_rule_values(self) -> None:
        """Test the default rule thresholds."""
        assert DEFAULT_RULE == AdmissionRule(None, 7.0, 8.0, 80)


class TestRuleCatalog:
    """Tests for RuleCatalog lookups."""

    def test_builtin_resolves_listed_course_case_insensitively(self) -> None:
        """Test resolving a listed course in any letter case."""
        catalog = RuleCatalog.builtin()

        rule = catalog.resolve("  Advanced Data STRUCTURES ")

        assert rule.prerequisite == "data structures"
        assert rule.min_cgpa == 7.5
        assert rule.strict_cgpa == 8.5
        assert rule.seat_limit == 80

    def test_builtin_advanced_machine_learning(self) -> None:
        """Test the second builtin course."""
        rule = RuleCatalog.builtin().resolve("advanced machine learning")

        assert rule.prerequisite == "machine learning"

    def test_unlisted_course_gets_default(self) -> None:
        """Test unlisted courses fall back to the default rule."""
        catalog = RuleCatalog.builtin()

        assert catalog.resolve("pottery") is catalog.default

    def test_contains_and_len(self) -> None:
        """Test membership and size."""
        catalog = RuleCatalog.builtin()

        assert "ADVANCED MACHINE LEARNING" in catalog
        assert "pottery" not in catalog
        assert 42 not in catalog
        assert len(catalog) == 2
        assert catalog.courses == ("advanced data structures", "advanced machine learning")

    def test_catalog_cannot_be_mutated(self) -> None:
        """Test the backing mapping is read-only."""
        catalog = RuleCatalog.builtin()

        with pytest.raises(TypeError):
            catalog._rules["pottery"] = DEFAULT_RULE  # type: ignore[index]

    def test_normalize_course(self) -> None:
        """Test course normalization."""
        assert normalize_course("  Compilers ") == "compilers"


class TestLoadRuleCatalog:
    """Tests for loading catalogs from YAML."""

    def test_loads_courses_and_default(self, tmp_path: Path) -> None:
        """Test course entries inherit thresholds from the file's default."""
        path = tmp_path / "rules.yaml"
        path.write_text(
            "default:\n"
            "  min_cgpa: 6.5\n"
            "  strict_cgpa: 7.5\n"
            "  seat_limit: 40\n"
            "courses:\n"
            "  Compilers:\n"
            "    prerequisite: Automata Theory\n"
            "    seat_limit: 2\n",
            encoding="utf-8",
        )

        catalog = load_rule_catalog(path)

        assert catalog.default == AdmissionRule(None, 6.5, 7.5, 40)
        assert catalog.resolve("compilers") == AdmissionRule("automata theory", 6.5, 7.5, 2)
        assert catalog.resolve("pottery") == AdmissionRule(None, 6.5, 7.5, 40)

    def test_empty_file_gives_builtin_default(self, tmp_path: Path) -> None:
        """Test an empty file yields an empty catalog with the default rule."""
        path = tmp_path / "rules.yaml"
        path.write_text("", encoding="utf-8")

        catalog = load_rule_catalog(path)

        assert len(catalog) == 0
        assert catalog.default == DEFAULT_RULE

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test a missing file raises RuleCatalogError."""
        with pytest.raises(RuleCatalogError, match="does not exist"):
            load_rule_catalog(tmp_path / "absent.yaml")

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        """Test a syntax error raises RuleCatalogError."""
        path = tmp_path / "rules.yaml"
        path.write_text("courses: [unclosed\n", encoding="utf-8")

        with pytest.raises(RuleCatalogError, match="Invalid YAML"):
            load_rule_catalog(path)

    def test_unknown_key(self, tmp_path: Path) -> None:
        """Test unknown rule keys are rejected."""
        path = tmp_path / "rules.yaml"
        path.write_text("courses:\n  compilers:\n    max_seats: 3\n", encoding="utf-8")

        with pytest.raises(RuleCatalogError, match="unknown keys: max_seats"):
            load_rule_catalog(path)

    def test_invalid_threshold(self, tmp_path: Path) -> None:
        """Test thresholds violating rule invariants are rejected."""
        path = tmp_path / "rules.yaml"
        path.write_text(
            "courses:\n  compilers:\n    min_cgpa: 9.0\n    strict_cgpa: 8.0\n",
            encoding="utf-8",
        )

        with pytest.raises(RuleCatalogError, match="compilers"):
            load_rule_catalog(path)

    def test_default_cannot_have_prerequisite(self, tmp_path: Path) -> None:
        """Test the default rule cannot name a prerequisite."""
        path = tmp_path / "rules.yaml"
        path.write_text("default:\n  prerequisite: calculus\n", encoding="utf-8")

        with pytest.raises(RuleCatalogError, match="prerequisite"):
            load_rule_catalog(path)

    def test_root_must_be_mapping(self, tmp_path: Path) -> None:
        """Test a list at the root is rejected."""
        path = tmp_path / "rules.yaml"
        path.write_text("- compilers\n", encoding="utf-8")

        with pytest.raises(RuleCatalogError, match="root must be a mapping"):
            load_rule_catalog(path)
