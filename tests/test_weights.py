"""Tests for audit weights and scoring."""

from __future__ import annotations

from ngaudit.models import CheckAggregate
from ngaudit.weights import DEFAULT_WEIGHT, WEIGHTS, calculate_audit_score, get_weight


def test_get_weight_falls_back_to_default() -> None:
    assert get_weight("imageAlt") == WEIGHTS["imageAlt"]
    assert get_weight("somethingNew") == DEFAULT_WEIGHT
    assert get_weight("custom", {"custom": 2}) == 2


def test_only_checks_with_elements_are_scored() -> None:
    aggregates = {
        "heavy": CheckAggregate(elements_found=3),
        "light": CheckAggregate(elements_found=2, issues=1, errors=1),
        "absent": CheckAggregate(elements_found=0, issues=0),
    }

    audit = calculate_audit_score(aggregates, {"heavy": 10, "light": 5, "absent": 7})

    assert audit["total"] == 15
    assert audit["earned"] == 10
    assert audit["score"] == 67
    assert [item["name"] for item in audit["audits"]] == ["light", "heavy"]
    assert audit["passed"] == 1
    assert audit["failed"] == 1


def test_warnings_do_not_fail_an_audit() -> None:
    aggregates = {"smallFontSize": CheckAggregate(elements_found=4, issues=2, warnings=2)}

    audit = calculate_audit_score(aggregates)

    assert audit["score"] == 100
    assert audit["audits"][0]["passed"] is True
    assert audit["audits"][0]["warnings"] == 2


def test_score_rounds_half_up() -> None:
    aggregates = {
        "a": CheckAggregate(elements_found=1),
        "b": CheckAggregate(elements_found=1, issues=1, errors=1),
    }

    audit = calculate_audit_score(aggregates, {"a": 1, "b": 7})

    assert audit["score"] == 13


def test_nothing_applicable_scores_full_marks() -> None:
    audit = calculate_audit_score({"imageAlt": CheckAggregate()})

    assert audit == {"score": 100, "earned": 0, "total": 0, "passed": 0, "failed": 0, "audits": []}


def test_failed_audits_sort_by_weight_then_name() -> None:
    failing = CheckAggregate(elements_found=1, issues=1, errors=1)
    aggregates = {"zeta": failing, "alpha": failing, "mid": failing, "ok": CheckAggregate(elements_found=1)}

    audit = calculate_audit_score(aggregates, {"zeta": 9, "alpha": 3, "mid": 3, "ok": 10})

    assert [item["name"] for item in audit["audits"]] == ["zeta", "alpha", "mid", "ok"]
