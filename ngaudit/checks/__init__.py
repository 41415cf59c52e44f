"""Check plugin implementations and discovery utilities."""

from __future__ import annotations

from importlib import metadata
from typing import Dict, Iterable, List, Optional, Sequence, Set

from ..errors import CheckLoadError, UnknownCheckError
from ..models import TIERS, CheckDescriptor
from .base import normalize_outcome, validate_descriptor
from .html import HTML_CHECKS
from .scss import SCSS_CHECKS

_ENTRY_POINT_GROUP = "ngaudit.checks"

TIER_HIERARCHY: Dict[str, tuple] = {
    "basic": ("basic",),
    "material": ("basic", "material"),
    "full": ("basic", "material", "full"),
}

BUILTIN_CHECKS = HTML_CHECKS + SCSS_CHECKS


def discover_checks(enabled: Sequence[str] | None = None) -> List[CheckDescriptor]:
    """Return built-in and entry point checks, honoring optional enabled names.

    Names are matched case-insensitively. The first check registered under a
    name wins, so built-ins cannot be shadowed by plugins.
    """

    enabled_set: Set[str] | None = None
    if enabled is not None:
        enabled_set = {name.lower() for name in enabled}

    checks: List[CheckDescriptor] = []
    seen: Set[str] = set()

    def _add(descriptor: CheckDescriptor) -> None:
        nonlocal enabled_set
        key = descriptor.name.lower()
        if enabled_set is not None and key not in enabled_set:
            return
        if key in seen:
            return
        checks.append(descriptor)
        seen.add(key)
        if enabled_set is not None:
            enabled_set.discard(key)

    for descriptor in BUILTIN_CHECKS:
        _add(descriptor)

    for entry in _iter_entry_points():
        try:
            loaded = entry.load()
        except Exception as exc:
            raise CheckLoadError(f"Failed to load check entry point '{entry.name}': {exc}") from exc
        _add(validate_descriptor(_coerce_descriptor(loaded), source=f"entry point '{entry.name}'"))

    if enabled_set:
        missing = ", ".join(sorted(enabled_set))
        raise UnknownCheckError(f"Unknown checks requested: {missing}")

    return checks


def _coerce_descriptor(obj: object) -> object:
    if isinstance(obj, CheckDescriptor):
        return obj
    if callable(obj):
        return obj()
    return obj


def _iter_entry_points() -> Iterable[metadata.EntryPoint]:
    entry_points = metadata.entry_points()
    if hasattr(entry_points, "select"):
        return entry_points.select(group=_ENTRY_POINT_GROUP)  # type: ignore[return-value]
    return entry_points.get(_ENTRY_POINT_GROUP, [])  # type: ignore[return-value]


def select_checks(
    checks: Iterable[CheckDescriptor],
    tier: str,
    file_type: Optional[str] = None,
    only: Optional[Sequence[str]] = None,
    exclude: Sequence[str] = (),
) -> List[CheckDescriptor]:
    """Filter ``checks`` by cumulative tier, file type and name."""
    if tier not in TIER_HIERARCHY:
        raise UnknownCheckError(f"Unknown tier '{tier}'; expected one of: {', '.join(TIERS)}")
    allowed = TIER_HIERARCHY[tier]
    only_set = {name.lower() for name in only} if only else None
    excluded = {name.lower() for name in exclude}

    selected: List[CheckDescriptor] = []
    for check in checks:
        key = check.name.lower()
        if check.tier not in allowed:
            continue
        if file_type is not None and check.file_type != file_type:
            continue
        if only_set is not None and key not in only_set:
            continue
        if key in excluded:
            continue
        selected.append(check)
    return sorted(selected, key=lambda check: check.name)


__all__ = [
    "BUILTIN_CHECKS",
    "TIER_HIERARCHY",
    "discover_checks",
    "normalize_outcome",
    "select_checks",
    "validate_descriptor",
]
