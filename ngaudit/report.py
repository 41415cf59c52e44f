"""Serialization helpers for analysis results."""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any, Dict, List, Mapping, Union

from .models import AnalysisResult

# Keys whose values change between otherwise identical runs.
_VOLATILE_KEYS = frozenset({"analysisTime", "timestamp"})


def _as_dict(result: Union[AnalysisResult, Mapping[str, Any]]) -> Dict[str, Any]:
    if isinstance(result, AnalysisResult):
        return result.to_dict()
    return dict(result)


def _strip(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {key: _strip(item) for key, item in value.items() if key not in _VOLATILE_KEYS}
    if isinstance(value, list):
        return [_strip(item) for item in value]
    return value


def normalize_result(result: Union[AnalysisResult, Mapping[str, Any]]) -> Dict[str, Any]:
    """Return the result dict without timing fields."""
    return _strip(_as_dict(result))


def result_digest(result: Union[AnalysisResult, Mapping[str, Any]]) -> str:
    """SHA-256 over the normalized result's compact, key-sorted JSON."""
    payload = json.dumps(normalize_result(result), sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def dump_json(result: Union[AnalysisResult, Mapping[str, Any]], path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(_as_dict(result), indent=2) + "\n", encoding="utf-8")
    return path


def render_summary(result: AnalysisResult) -> str:
    """Short human-readable summary printed by the CLI."""
    lines: List[str] = [
        f"Mode: {result.mode}  Tier: {result.tier}",
        f"Files scanned: {result.files_scanned}  Components scanned: {result.components_scanned}",
        f"Audit score: {result.audit_score}  Issues: {result.total_issues} "
        f"in {result.component_count} component(s)",
    ]
    failed_audits = [audit for audit in result.audit.get("audits", []) if not audit["passed"]]
    if failed_audits:
        lines.append("Failed audits:")
        lines.extend(
            f"  - {audit['name']} (weight {audit['weight']}): {audit['errors']} error(s)"
            for audit in failed_audits
        )
    if result.optimization is not None and result.optimization.enabled:
        optimization = result.optimization
        lines.append(
            f"Page issues: {optimization.original_count} raw, {optimization.optimized_count} after "
            f"collapsing {len(optimization.root_causes)} shared root cause(s)"
        )
    if result.pages:
        lines.append("Pages:")
        lines.extend(f"  - {page.route or page.entry}: {len(page.issues)} issue(s)" for page in result.pages)
    for component in result.components:
        lines.append(f"{component.name}: {len(component.issues)} issue(s)")
        for issue in component.issues:
            location = f"{issue.source}:{issue.line}" if issue.line else issue.source
            headline = issue.message.splitlines()[0] if issue.message else ""
            lines.append(f"  [{issue.check}] {location} {headline}")
    if result.check_failures:
        lines.append(f"Checks that failed to run: {len(result.check_failures)}")
        lines.extend(f"  - {failure.check} on {failure.source}: {failure.error}" for failure in result.check_failures)
    return "\n".join(lines)


__all__ = ["dump_json", "normalize_result", "render_summary", "result_digest"]
