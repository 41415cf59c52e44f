"""Collapse issues repeated across pages into one report per shared component."""

from __future__ import annotations

from collections import defaultdict
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from .logging import get_logger
from .models import Issue, OptimizedIssues, PageReport, RootCauseIssue
from .registry import ComponentRegistry

_logger = get_logger("optimizer")

Signature = Tuple[str, str, str, int]


def _signatures(issues: Sequence[Issue]) -> List[Tuple[Signature, Issue]]:
    """Key issues by (check, source, message, occurrence) so repeats within a page stay distinct."""
    counts: Dict[Tuple[str, str, str], int] = defaultdict(int)
    keyed: List[Tuple[Signature, Issue]] = []
    for item in sorted(issues, key=Issue.sort_key):
        base = (item.check, item.source, item.message)
        keyed.append(((*base, counts[base]), item))
        counts[base] += 1
    return keyed


def _owning_component(item: Issue, registry: ComponentRegistry) -> Optional[str]:
    if item.file is None:
        return item.selector if item.selector in registry else None
    path = Path(item.file)
    if not path.is_absolute():
        path = registry.root / path
    return registry.owner_of(path)


def optimize_issues(
    pages: Sequence[PageReport],
    registry: ComponentRegistry,
    *,
    enabled: bool = True,
) -> OptimizedIssues:
    """Report each issue owned by a shared component once, listing every page it affects.

    An issue becomes a root cause when the same signature appears on two or
    more pages and its source belongs to a registry component. Everything else
    stays with its page unchanged.
    """
    original_count = sum(len(page.issues) for page in pages)
    if not enabled:
        return OptimizedIssues(
            enabled=False,
            page_issues={page.entry: list(page.issues) for page in pages},
            original_count=original_count,
        )

    keyed_pages = {page.entry: _signatures(page.issues) for page in pages}
    pages_by_signature: Dict[Signature, List[str]] = defaultdict(list)
    representative: Dict[Signature, Issue] = {}
    for entry, keyed in keyed_pages.items():
        for signature, item in keyed:
            pages_by_signature[signature].append(entry)
            representative.setdefault(signature, item)

    root_causes: Dict[Signature, RootCauseIssue] = {}
    for signature, entries in pages_by_signature.items():
        if len(entries) < 2:
            continue
        item = representative[signature]
        component = _owning_component(item, registry)
        if component is None:
            continue
        root_causes[signature] = RootCauseIssue(
            issue=item,
            component=component,
            affected_pages=tuple(sorted(set(entries))),
        )

    page_issues: Dict[str, List[Issue]] = {}
    for entry, keyed in keyed_pages.items():
        page_issues[entry] = [item for signature, item in keyed if signature not in root_causes]

    result = OptimizedIssues(
        enabled=True,
        root_causes=sorted(
            root_causes.values(),
            key=lambda cause: (-cause.page_count, cause.issue.sort_key()),
        ),
        page_issues=page_issues,
        original_count=original_count,
    )
    _logger.debug(
        "Optimized %d issues to %d (%d root causes)",
        original_count,
        result.optimized_count,
        len(result.root_causes),
    )
    return result


__all__ = ["optimize_issues"]
