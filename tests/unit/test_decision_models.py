# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for decision DTOs."""

from admissions.models.admission import (
    DecisionReason,
    DecisionResult,
    DecisionStatus,
    ReasonCode,
)


class TestDecisionReason:
    """Tests for reason rendering."""

    def test_prerequisite_text(self) -> None:
        """Test prerequisite reason text."""
        reason = DecisionReason.prerequisite_not_completed("data structures")

        assert reason.code is ReasonCode.PREREQUISITE_NOT_COMPLETED
        assert reason.render() == "Prerequisite not completed"

    def test_minimum_cgpa_text(self) -> None:
        """Test the minimum CGPA is rendered in the reason."""
        assert DecisionReason.minimum_cgpa_required(7.5).render() == "Minimum CGPA 7.5 required"
        assert DecisionReason.minimum_cgpa_required(7).render() == "Minimum CGPA 7.0 required"


class TestDecisionStatus:
    """Tests for DecisionStatus."""

    def test_only_pending_is_not_terminal(self) -> None:
        """Test every status but pending is terminal."""
        assert not DecisionStatus.PENDING.is_terminal
        assert all(s.is_terminal for s in DecisionStatus if s is not DecisionStatus.PENDING)

    def test_result_serializes_enum_values(self) -> None:
        """Test decision results serialize to plain strings."""
        result = DecisionResult(
            request_id="r-1",
            status=DecisionStatus.REJECTED,
            reason_code=ReasonCode.MINIMUM_CGPA_REQUIRED,
            reason="Minimum CGPA 7.0 required",
            message="Rejected: CGPA below requirement",
        )

        data = result.model_dump(mode="json")

        assert data["status"] == "rejected"
        assert data["reason_code"] == "minimum_cgpa_required"
        assert data["strict_tier"] is False
