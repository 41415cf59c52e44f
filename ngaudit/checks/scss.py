"""Built-in checks that run over SCSS/CSS stylesheets."""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

from ..models import CheckDescriptor
from ..weights import get_weight
from .base import LineIndex, format_issue, issue

_OUTLINE_REMOVAL = re.compile(
    r"outline(?:-style|-width)?\s*:\s*(none|0|transparent)(\s*!important)?\s*;", re.IGNORECASE
)
_FOCUS_WITH_ALTERNATIVE = re.compile(
    r":focus(?:-visible|-within)?[^{]*\{[^}]*"
    r"(box-shadow|border\s*:|border-color|background\s*:|background-color|text-decoration)[^}]*\}",
    re.IGNORECASE,
)
_FOCUS_RULE = re.compile(r"(:focus(?:-visible|-within)?[^{]*)\{([^}]*)\}", re.IGNORECASE)
_REMOVES_OUTLINE = re.compile(r"outline(?:-style|-width)?\s*:\s*(none|0|transparent)", re.IGNORECASE)
_BOX_SHADOW = re.compile(r"box-shadow\s*:", re.IGNORECASE)
_BOX_SHADOW_NONE = re.compile(r"box-shadow\s*:\s*none", re.IGNORECASE)
_BORDER = re.compile(r"border(?:-color)?\s*:", re.IGNORECASE)
_BORDER_NONE = re.compile(r"border\s*:\s*(none|0)", re.IGNORECASE)
_BACKGROUND = re.compile(r"background(?:-color)?\s*:", re.IGNORECASE)
_TEXT_DECORATION = re.compile(r"text-decoration\s*:", re.IGNORECASE)


def _outline_issue(element: str, line: Optional[int] = None) -> dict:
    return issue(
        format_issue(
            "error",
            "Focus outline removed without alternative",
            "Keyboard users cannot see which element has focus",
            fixes=(
                "Remove outline:none or outline:0",
                "Provide custom :focus styles",
                "Use :focus-visible for mouse/keyboard distinction",
            ),
            wcag="2.4.7",
            element=element,
            line=line,
        ),
        line,
    )


def _has_focus_alternative(rule: str) -> bool:
    if _BOX_SHADOW.search(rule) and not _BOX_SHADOW_NONE.search(rule):
        return True
    if _BORDER.search(rule) and not _BORDER_NONE.search(rule):
        return True
    return bool(_BACKGROUND.search(rule) or _TEXT_DECORATION.search(rule))


def check_outline_none_without_alt(content: str) -> Dict[str, Any]:
    lines = LineIndex(content)
    issues: List[dict] = []

    removals = _OUTLINE_REMOVAL.findall(content)
    if removals and not _FOCUS_WITH_ALTERNATIVE.search(content):
        issues.append(_outline_issue(f"{len(removals)} instance(s) of outline removal"))

    focus_rules = 0
    for match in _FOCUS_RULE.finditer(content):
        focus_rules += 1
        body = match.group(2)
        if not _REMOVES_OUTLINE.search(body) or _has_focus_alternative(body):
            continue
        line = lines.line_of(match.start())
        issues.append(_outline_issue(match.group(1).strip() or ":focus rule", line))

    return {"pass": not issues, "issues": issues, "elementsFound": len(removals) + focus_rules}


_FONT_SIZE_RULE = re.compile(r"([\w\s.#\[\]='\"~^$*|&>:+-]+)\s*\{[^}]*font-size\s*:\s*([^;}\n]+)", re.IGNORECASE)
_SIZE_VALUE = re.compile(r"^(\d+(?:\.\d+)?)\s*(px|rem|em|pt)", re.IGNORECASE)

# Smallest readable size per unit, assuming a 16px root font.
_MIN_SIZE = {"px": 12.0, "rem": 0.75, "em": 0.75, "pt": 9.0}


def _format_number(value: float) -> str:
    return f"{value:g}"


def check_small_font_size(content: str) -> Dict[str, Any]:
    lines = LineIndex(content)
    issues: List[dict] = []
    elements = 0
    for match in _FONT_SIZE_RULE.finditer(content):
        elements += 1
        selector = match.group(1).strip()
        size_match = _SIZE_VALUE.match(match.group(2).strip())
        if not size_match:
            continue
        value = float(size_match.group(1))
        unit = size_match.group(2).lower()
        if value >= _MIN_SIZE[unit]:
            continue

        size = f"{_format_number(value)}{unit}"
        if unit == "rem":
            size = f"{size} (approximately {_format_number(value * 16)}px)"
        line = lines.line_of(match.start(2))
        issues.append(
            issue(
                format_issue(
                    "warning",
                    f"Font size {size} may be too small",
                    "Small text is difficult for users with low vision",
                    fixes=(
                        "Use minimum 16px (1rem) for body text",
                        "Use relative units (rem, em) for scalability",
                        "Test at 200% zoom",
                    ),
                    wcag="1.4.4",
                    element=f'"{selector}"',
                ),
                line,
            )
        )
    return {"pass": not issues, "issues": issues, "elementsFound": elements}


_ANIMATION = re.compile(r"animation(?:-name)?\s*:|@keyframes\s+", re.IGNORECASE)
_TRANSITION = re.compile(r"transition\s*:([^;]*)", re.IGNORECASE)
_REDUCED_MOTION = re.compile(r"@media\s*\([^)]*prefers-reduced-motion[^)]*\)", re.IGNORECASE)


def check_prefers_reduced_motion(content: str) -> Dict[str, Any]:
    animations = _ANIMATION.findall(content)
    transitions = [value for value in _TRANSITION.findall(content) if "none" not in value.lower()]
    elements = len(animations) + len(transitions)
    if not elements or _REDUCED_MOTION.search(content):
        return {"pass": True, "issues": [], "elementsFound": elements}

    motion = " and ".join(
        label for label, present in (("animations", animations), ("transitions", transitions)) if present
    )
    message = (
        f"[Warning] File uses {motion} without respecting user motion preferences. "
        "Users with vestibular disorders or motion sensitivity may experience nausea, "
        "dizziness, or discomfort.\n"
        "  How to fix:\n"
        "    - Wrap animations/transitions in @media (prefers-reduced-motion: reduce) { ... }\n"
        "    - Provide alternative non-animated experiences for users who prefer reduced motion\n"
        "  WCAG 2.3.3: Animation from Interactions (Level AAA)\n"
        f"  Found: {motion} in file"
    )
    return {"pass": False, "issues": [message], "elementsFound": elements}


SCSS_CHECKS = (
    CheckDescriptor(
        name="outlineNoneWithoutAlt",
        tier="material",
        file_type="scss",
        fn=check_outline_none_without_alt,
        weight=get_weight("outlineNoneWithoutAlt"),
        description="Outline removal comes with an alternative focus indicator",
        wcag="2.4.7",
    ),
    CheckDescriptor(
        name="smallFontSize",
        tier="full",
        file_type="scss",
        fn=check_small_font_size,
        weight=get_weight("smallFontSize"),
        description="Font sizes are not below 12px",
        wcag="1.4.4",
    ),
    CheckDescriptor(
        name="prefersReducedMotion",
        tier="full",
        file_type="scss",
        fn=check_prefers_reduced_motion,
        weight=get_weight("prefersReducedMotion"),
        description="Animations and transitions respect prefers-reduced-motion",
        wcag="2.3.3",
    ),
)

__all__ = [
    "SCSS_CHECKS",
    "check_outline_none_without_alt",
    "check_prefers_reduced_motion",
    "check_small_font_size",
]
