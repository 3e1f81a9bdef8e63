from __future__ import annotations

import logging
from datetime import datetime, timezone

import pytest

from abac.context.evaluation_context import EvaluationContext
from abac.evaluators.contracts import CustomEvaluator
from abac.evaluators.registry import EVALUATOR_FAILURE_MESSAGE, WorkstreamEvaluatorRegistry
from abac.evaluators.result import EvaluationResult
from abac.exceptions import DuplicateEvaluatorError, RegistryLockedError

FIXED_TIME = datetime(2026, 2, 13, 12, 0, 0, tzinfo=timezone.utc)


def _context(**attributes) -> EvaluationContext:
    return EvaluationContext(
        subject_id="alice",
        workstream_id="loans",
        resource="Loan",
        action="approve",
        request_time=FIXED_TIME,
        attributes=attributes,
    )


# ══════════════════════════════════════════════════════════════
# TEST EVALUATORS
# ══════════════════════════════════════════════════════════════

class AbstainingEvaluator(CustomEvaluator):
    workstream_id = "loans"

    def __init__(self):
        self.calls = 0

    def evaluate(self, context, resource, action):
        self.calls += 1
        return None


class WriteOffEvaluator(CustomEvaluator):
    workstream_id = "loans"

    def evaluate(self, context, resource, action):
        if action != "write-off":
            return None
        if context.get_attribute("CanWriteOff") is True:
            return self.allow()
        return self.deny("write-off needs CanWriteOff", "Write-offs require special approval")


class AlwaysDenyEvaluator(CustomEvaluator):
    workstream_id = "loans"

    def __init__(self):
        self.calls = 0

    def evaluate(self, context, resource, action):
        self.calls += 1
        return self.deny("always")


class CrashingEvaluator(CustomEvaluator):
    workstream_id = "loans"

    def evaluate(self, context, resource, action):
        raise RuntimeError("boom")


class SloppyEvaluator(CustomEvaluator):
    workstream_id = "loans"

    def evaluate(self, context, resource, action):
        return True


class PaymentsEvaluator(CustomEvaluator):
    workstream_id = "payments"

    def evaluate(self, context, resource, action):
        return self.deny("payments only")


@pytest.fixture
def registry() -> WorkstreamEvaluatorRegistry:
    return WorkstreamEvaluatorRegistry()


class TestAbstain:
    def test_no_evaluators_returns_none(self, registry):
        assert registry.evaluate("loans", _context(), "Loan", "approve") is None

    def test_all_abstaining_returns_none(self, registry):
        registry.register(AbstainingEvaluator())
        registry.register(WriteOffEvaluator())
        assert registry.evaluate("loans", _context(), "Loan", "approve") is None

    def test_other_workstream_evaluators_not_consulted(self, registry):
        registry.register(PaymentsEvaluator())
        assert registry.evaluate("loans", _context(), "Loan", "approve") is None


class TestFirstResultWins:
    def test_registration_order(self, registry):
        abstaining = AbstainingEvaluator()
        deny = AlwaysDenyEvaluator()
        registry.register(abstaining)
        registry.register(WriteOffEvaluator())
        registry.register(deny)

        result = registry.evaluate("loans", _context(CanWriteOff=True), "Loan", "write-off")
        assert result == EvaluationResult.allow("WriteOffEvaluator allowed")
        assert abstaining.calls == 1
        assert deny.calls == 0

    def test_deny_carries_message(self, registry):
        registry.register(WriteOffEvaluator())
        result = registry.evaluate("loans", _context(), "Loan", "write-off")
        assert result.allowed is False
        assert result.display_reason == "Write-offs require special approval"


class TestFailClosed:
    def test_raising_evaluator_denies(self, registry, caplog):
        registry.register(CrashingEvaluator())
        with caplog.at_level(logging.ERROR, logger="abac.evaluators"):
            result = registry.evaluate("loans", _context(), "Loan", "approve")
        assert result.allowed is False
        assert result.display_reason == EVALUATOR_FAILURE_MESSAGE
        assert "CrashingEvaluator" in caplog.text

    def test_crash_is_final_and_later_evaluators_are_skipped(self, registry):
        later = AbstainingEvaluator()
        registry.register(CrashingEvaluator())
        registry.register(WriteOffEvaluator())
        registry.register(later)

        result = registry.evaluate("loans", _context(CanWriteOff=True), "Loan", "write-off")
        assert result.allowed is False
        assert result.display_reason == EVALUATOR_FAILURE_MESSAGE
        assert later.calls == 0

    def test_invalid_return_type_denies(self, registry):
        registry.register(SloppyEvaluator())
        result = registry.evaluate("loans", _context(), "Loan", "approve")
        assert result.allowed is False


class TestRegistration:
    def test_duplicate_class_rejected(self, registry):
        registry.register(AbstainingEvaluator())
        with pytest.raises(DuplicateEvaluatorError):
            registry.register(AbstainingEvaluator())

    def test_locked_registry_rejects(self, registry):
        registry.lock()
        with pytest.raises(RegistryLockedError):
            registry.register(AbstainingEvaluator())
        assert registry.is_locked

    def test_non_evaluator_rejected(self, registry):
        with pytest.raises(TypeError):
            registry.register(object())

    def test_get_evaluators_in_order(self, registry):
        first, second = AbstainingEvaluator(), WriteOffEvaluator()
        registry.register(first)
        registry.register(second)
        registry.register(PaymentsEvaluator())
        assert registry.get_evaluators("loans") == (first, second)
        assert registry.evaluator_count == 3

    def test_missing_workstream_id_rejected_at_class_creation(self):
        with pytest.raises(TypeError, match="workstream_id"):
            class Nameless(CustomEvaluator):
                def evaluate(self, context, resource, action):
                    return None


class TestEvaluationResult:
    def test_deny_requires_reason(self):
        with pytest.raises(ValueError):
            EvaluationResult(allowed=False)

    def test_display_reason_falls_back_to_reason(self):
        assert EvaluationResult.deny("internal").display_reason == "internal"
