"""Tests for the shared record types."""

from __future__ import annotations

import math

import pytest

from cogniplug.types import Context, ResourceRequirements, Urgency


class TestContext:
    def test_normalizes_sequences_and_urgency(self):
        ctx = Context(history=["a", "b"], urgency="high", attributes={"k": 1})

        assert ctx.history == ("a", "b")
        assert ctx.urgency is Urgency.HIGH
        assert ctx.session_phase == 2
        with pytest.raises(TypeError):
            ctx.attributes["k"] = 2

    @pytest.mark.parametrize("complexity", [math.inf, -math.inf, math.nan])
    def test_rejects_non_finite_complexity(self, complexity):
        with pytest.raises(ValueError, match="complexity"):
            Context(complexity=complexity)

    def test_session_length_is_at_least_one(self):
        assert Context().session_length == 1
        assert Context(total_thoughts=4).session_length == 4


class TestResourceRequirements:
    def test_rejects_out_of_range_load(self):
        with pytest.raises(ValueError):
            ResourceRequirements(cognitive_load=1.5)
