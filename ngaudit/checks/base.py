"""Check plugin contract: descriptor validation, result normalization and message formatting."""

from __future__ import annotations

import bisect
import re
from typing import Any, Iterable, List, Mapping, Optional, Sequence

from ..errors import CheckLoadError
from ..models import FILE_TYPES, TIERS, CheckDescriptor, CheckOutcome, Finding

_SEVERITY_PREFIX = {"error": "[Error]", "warning": "[Warning]", "info": "[Info]"}
_WHITESPACE = re.compile(r"\s+")
_SNIPPET_LIMIT = 100


def format_issue(
    severity: str,
    message: str,
    why: str,
    *,
    fixes: Sequence[str] = (),
    wcag: Optional[str] = None,
    link: Optional[str] = None,
    element: Optional[str] = None,
    line: Optional[int] = None,
) -> str:
    """Render a multi-line issue message prefixed with its severity marker."""
    lines = [f"{_SEVERITY_PREFIX.get(severity, '[Info]')} {message}. {why}"]
    if fixes:
        lines.append("  How to fix:")
        lines.extend(f"    - {fix}" for fix in fixes)

    refs = []
    if wcag:
        refs.append(f"WCAG {wcag}")
    if link:
        refs.append(f"See: {link}")
    if refs:
        lines.append(f"  {' | '.join(refs)}")

    if element:
        location = f" (line {line})" if line else ""
        lines.append(f"  Found: {snippet(element)}{location}")
    return "\n".join(lines)


def snippet(element: str, limit: int = _SNIPPET_LIMIT) -> str:
    collapsed = _WHITESPACE.sub(" ", element).strip()
    if len(collapsed) > limit:
        return collapsed[:limit] + "..."
    return collapsed


class LineIndex:
    """Maps character offsets in ``text`` to 1-based line numbers."""

    def __init__(self, text: str) -> None:
        self._starts = [0]
        self._starts.extend(match.end() for match in re.finditer("\n", text))

    def line_of(self, offset: int) -> int:
        return bisect.bisect_right(self._starts, offset)


def issue(message: str, line: Optional[int] = None) -> dict:
    data: dict = {"message": message}
    if line is not None:
        data["line"] = line
    return data


def normalize_outcome(raw: Any) -> CheckOutcome:
    """Coerce whatever a check returned into a :class:`CheckOutcome`.

    Accepts mappings using ``pass``/``issues``/``elementsFound`` and objects
    exposing ``passed``/``issues``/``elements_found``. Issues may be plain
    strings or mappings with ``message`` and an optional ``line``.
    """
    if isinstance(raw, CheckOutcome):
        return raw
    if isinstance(raw, Mapping):
        passed = raw.get("pass", raw.get("passed"))
        issues = raw.get("issues")
        elements = raw.get("elementsFound", raw.get("elements_found"))
    elif raw is not None and hasattr(raw, "issues"):
        passed = getattr(raw, "passed", getattr(raw, "pass_", None))
        issues = getattr(raw, "issues")
        elements = getattr(raw, "elements_found", None)
    else:
        raise TypeError(f"Check returned {type(raw).__name__}, expected a mapping or result object")

    findings = tuple(_to_findings(issues or ()))
    if passed is None:
        passed = not findings
    return CheckOutcome(
        passed=bool(passed),
        findings=findings,
        elements_found=_as_count(elements),
    )


def _to_findings(issues: Iterable[Any]) -> List[Finding]:
    findings: List[Finding] = []
    for item in issues:
        if isinstance(item, Finding):
            findings.append(item)
        elif isinstance(item, str):
            findings.append(Finding(message=item))
        elif isinstance(item, Mapping) and "message" in item:
            line = item.get("line")
            findings.append(
                Finding(message=str(item["message"]), line=line if isinstance(line, int) else None)
            )
        else:
            findings.append(Finding(message=str(item)))
    return findings


def _as_count(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        return 0
    return max(0, value)


def validate_descriptor(candidate: Any, source: str = "check") -> CheckDescriptor:
    """Return ``candidate`` as a descriptor or raise :class:`CheckLoadError`."""
    if not isinstance(candidate, CheckDescriptor):
        raise CheckLoadError(f"{source} did not produce a CheckDescriptor")

    errors = []
    if not candidate.name:
        errors.append('field "name" is required')
    if candidate.tier not in TIERS:
        errors.append(f'field "tier" must be one of: {", ".join(TIERS)}')
    if candidate.file_type not in FILE_TYPES:
        errors.append(f'field "type" must be one of: {", ".join(FILE_TYPES)}')
    if not callable(candidate.fn):
        errors.append('field "check" must be callable')
    if errors:
        raise CheckLoadError(f"Invalid check '{candidate.name or source}': {'; '.join(errors)}")
    return candidate


__all__ = [
    "LineIndex",
    "format_issue",
    "issue",
    "normalize_outcome",
    "snippet",
    "validate_descriptor",
]
