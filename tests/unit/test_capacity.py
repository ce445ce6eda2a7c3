# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for seat band classification."""

import pytest

from admissions.domains.admission.capacity import CapacityOutcome, classify
from admissions.domains.admission.rules import AdmissionRule

RULE = AdmissionRule(None, 7.0, 8.0, 80)


class TestClassify:
    """Tests for classify()."""

    @pytest.mark.parametrize("count", [0, 40, 79])
    def test_below_limit_approves_any_eligible_cgpa(self, count: int) -> None:
        """Test counts below the limit approve normally."""
        assert classify(count, 7.0, RULE) is CapacityOutcome.APPROVED

    def test_at_limit_is_strict_band(self) -> None:
        """Test a count equal to the limit already needs the strict CGPA."""
        assert classify(80, 7.9, RULE) is CapacityOutcome.WAITLISTED
        assert classify(80, 8.0, RULE) is CapacityOutcome.STRICT_APPROVED

    def test_above_limit_strict_cgpa_still_admits(self) -> None:
        """Test strict-tier students are admitted beyond the limit."""
        assert classify(95, 9.1, RULE) is CapacityOutcome.STRICT_APPROVED

    def test_missing_cgpa_at_limit_is_waitlisted(self) -> None:
        """Test a missing CGPA never reaches the strict tier."""
        assert classify(80, None, RULE) is CapacityOutcome.WAITLISTED

    def test_admits(self) -> None:
        """Test which outcomes grant a seat."""
        assert CapacityOutcome.APPROVED.admits
        assert CapacityOutcome.STRICT_APPROVED.admits
        assert not CapacityOutcome.WAITLISTED.admits
