"""Built-in checks that run over HTML templates."""

from __future__ import annotations

import re
from typing import Any, Dict, List

from ..models import CheckDescriptor
from ..weights import get_weight
from .base import LineIndex, format_issue, issue

_IMG = re.compile(r"<img\b[^>]*>", re.IGNORECASE)
_IMG_ALT = re.compile(r"\balt\s*=|\[alt\]\s*=|\[attr\.alt\]\s*=", re.IGNORECASE)


def check_image_alt(content: str) -> Dict[str, Any]:
    lines = LineIndex(content)
    issues: List[dict] = []
    elements = 0
    for match in _IMG.finditer(content):
        elements += 1
        if _IMG_ALT.search(match.group(0)):
            continue
        line = lines.line_of(match.start())
        issues.append(
            issue(
                format_issue(
                    "error",
                    "Image missing alt attribute",
                    "Screen readers cannot describe images without alt text",
                    fixes=(
                        'Add alt="description" for informative images',
                        'Add alt="" for decorative images',
                    ),
                    wcag="1.1.1",
                    link="https://www.w3.org/WAI/tutorials/images/",
                    element=match.group(0),
                    line=line,
                ),
                line,
            )
        )
    return {"pass": not issues, "issues": issues, "elementsFound": elements}


_BUTTON = re.compile(r"<button\b[^>]*>[\s\S]*?</button>", re.IGNORECASE)
_INPUT_BUTTON = re.compile(
    r"<input\b[^>]*type\s*=\s*[\"']?(button|submit|reset|image)[\"']?[^>]*/?>", re.IGNORECASE
)
_ARIA_LABEL = re.compile(r"\baria-label\s*=|attr\.aria-label\]|\[aria-label\]", re.IGNORECASE)
_ARIA_LABELLEDBY = re.compile(
    r"\baria-labelledby\s*=|attr\.aria-labelledby\]|\[aria-labelledby\]", re.IGNORECASE
)
_TITLE = re.compile(r"\btitle\s*=|attr\.title\]|\[title\]", re.IGNORECASE)
_VALUE = re.compile(r"\bvalue\s*=\s*[\"'][^\"']+[\"']|\[value\]", re.IGNORECASE)
_ALT_VALUE = re.compile(r"\balt\s*=\s*[\"'][^\"']+[\"']|attr\.alt\]", re.IGNORECASE)
_ICONS = re.compile(
    r"<(?:mat-icon|svg|i[^>]*class\s*=\s*[\"'][^\"']*\b(?:icon|fa|material-icons)\b)[^>]*>[\s\S]*?</(?:mat-icon|svg|i)>"
    r"|<span[^>]*class\s*=\s*[\"'][^\"']*\b(?:icon|fa|material-icons)\b[^\"']*[\"'][^>]*>[\s\S]*?</span>",
    re.IGNORECASE,
)
_TAGS = re.compile(r"<[^>]+>")
_INTERPOLATION = re.compile(r"\{\{[^}]+\}\}")


def _has_label_attribute(element: str) -> bool:
    return bool(_ARIA_LABEL.search(element) or _ARIA_LABELLEDBY.search(element) or _TITLE.search(element))


def _button_text(button: str) -> str:
    text = _ICONS.sub("", button)
    text = _TAGS.sub(" ", text)
    text = _INTERPOLATION.sub(" TEXT ", text)
    return " ".join(text.split())


def check_button_names(content: str) -> Dict[str, Any]:
    lines = LineIndex(content)
    issues: List[dict] = []
    elements = 0

    for match in _BUTTON.finditer(content):
        elements += 1
        button = match.group(0)
        if _has_label_attribute(button) or _button_text(button):
            continue
        line = lines.line_of(match.start())
        issues.append(
            issue(
                format_issue(
                    "error",
                    "Button missing accessible name",
                    "Screen readers cannot announce the button purpose",
                    fixes=(
                        "Add text content inside <button>",
                        'Add aria-label="description"',
                        "Add aria-labelledby referencing visible text",
                        "For icon buttons, add visually-hidden text",
                    ),
                    wcag="4.1.2",
                    element=button,
                    line=line,
                ),
                line,
            )
        )

    for match in _INPUT_BUTTON.finditer(content):
        elements += 1
        element = match.group(0)
        input_type = match.group(1).lower()
        if _has_label_attribute(element) or input_type in ("submit", "reset"):
            continue
        if input_type == "image" and (_ALT_VALUE.search(element) or _VALUE.search(element)):
            continue
        if input_type == "button" and _VALUE.search(element):
            continue
        line = lines.line_of(match.start())
        issues.append(
            issue(
                format_issue(
                    "error",
                    "Input button missing accessible name",
                    "Screen readers cannot announce the button purpose",
                    fixes=('Add value="Button text"', 'Add aria-label="description"'),
                    wcag="4.1.2",
                    element=element,
                    line=line,
                ),
                line,
            )
        )

    return {"pass": not issues, "issues": issues, "elementsFound": elements}


_IFRAME = re.compile(r"<iframe\b[^>]*>", re.IGNORECASE)
_IFRAME_NAME = re.compile(r"\btitle\s*=|\[title\]\s*=|aria-label\s*=|aria-labelledby\s*=", re.IGNORECASE)


def check_iframe_titles(content: str) -> Dict[str, Any]:
    lines = LineIndex(content)
    issues: List[dict] = []
    elements = 0
    for match in _IFRAME.finditer(content):
        elements += 1
        if _IFRAME_NAME.search(match.group(0)):
            continue
        line = lines.line_of(match.start())
        issues.append(
            issue(
                format_issue(
                    "error",
                    "iframe missing title attribute",
                    "Screen readers announce frames without context",
                    fixes=('Add title="Description of frame content"',),
                    wcag="4.1.2",
                    element=match.group(0),
                    line=line,
                ),
                line,
            )
        )
    return {"pass": not issues, "issues": issues, "elementsFound": elements}


_MAT_ICON_ELEMENT = re.compile(
    r"<mat-icon([^>]*)>([^<]*)</mat-icon>|<mat-icon([^>]*)/>", re.IGNORECASE
)
_MAT_ICON_ATTRIBUTE = re.compile(r"<[a-z][a-z0-9-]*[^>]*\bmatIcon\b[^>]*>", re.IGNORECASE)
_ARIA_HIDDEN_TRUE = re.compile(r"aria-hidden\s*=\s*[\"']true[\"']", re.IGNORECASE)
_ARIA_LABEL_VALUE = re.compile(r"aria-label\s*=\s*[\"'][^\"']+[\"']", re.IGNORECASE)
_ARIA_LABELLEDBY_VALUE = re.compile(r"aria-labelledby\s*=\s*[\"'][^\"']+[\"']", re.IGNORECASE)


def _icon_is_described(attributes: str) -> bool:
    return bool(
        _ARIA_HIDDEN_TRUE.search(attributes)
        or _ARIA_LABEL_VALUE.search(attributes)
        or _ARIA_LABELLEDBY_VALUE.search(attributes)
    )


def check_mat_icon_accessibility(content: str) -> Dict[str, Any]:
    lines = LineIndex(content)
    issues: List[dict] = []
    elements = 0

    candidates = [
        (match.start(), match.group(0), match.group(1) or match.group(3) or "")
        for match in _MAT_ICON_ELEMENT.finditer(content)
    ]
    candidates.extend(
        (match.start(), match.group(0), match.group(0)) for match in _MAT_ICON_ATTRIBUTE.finditer(content)
    )

    for start, element, attributes in candidates:
        elements += 1
        if _icon_is_described(attributes):
            continue
        line = lines.line_of(start)
        issues.append(
            issue(
                format_issue(
                    "error",
                    "mat-icon missing accessibility attributes",
                    "Icons are announced incorrectly without proper ARIA",
                    fixes=(
                        'Add aria-hidden="true" for decorative icons',
                        "Add aria-label for meaningful icons",
                    ),
                    wcag="1.1.1",
                    link="https://material.angular.io/components/icon/overview#accessibility",
                    element=element,
                    line=line,
                ),
                line,
            )
        )
    return {"pass": not issues, "issues": issues, "elementsFound": elements}


_MAT_FORM_FIELD = re.compile(r"<mat-form-field([^>]*)>([\s\S]*?)</mat-form-field>", re.IGNORECASE)
_MAT_LABEL = re.compile(r"<mat-label[^>]*>", re.IGNORECASE)


def check_mat_form_field_label(content: str) -> Dict[str, Any]:
    lines = LineIndex(content)
    issues: List[dict] = []
    elements = 0
    for match in _MAT_FORM_FIELD.finditer(content):
        elements += 1
        if _MAT_LABEL.search(match.group(2) or ""):
            continue
        line = lines.line_of(match.start())
        issues.append(
            issue(
                format_issue(
                    "error",
                    "mat-form-field missing label",
                    "Screen readers cannot identify the input purpose",
                    fixes=(
                        "Add <mat-label> inside mat-form-field",
                        "Add aria-label to the input",
                        "Add placeholder (not recommended as sole label)",
                    ),
                    wcag="1.3.1",
                    element=match.group(0),
                    line=line,
                ),
                line,
            )
        )
    return {"pass": not issues, "issues": issues, "elementsFound": elements}


_NON_INTERACTIVE = (
    "div", "span", "p", "section", "article", "header", "footer", "main",
    "aside", "nav", "figure", "figcaption", "li", "ul", "ol", "dl", "dt", "dd",
    "table", "tr", "td", "th", "tbody", "thead", "tfoot", "img", "label",
)
_NON_INTERACTIVE_TAG = re.compile(rf"<({'|'.join(_NON_INTERACTIVE)})\b([^>]*)>", re.IGNORECASE)
_CLICK = re.compile(r"\(click\)\s*=")
_KEY_HANDLER = re.compile(r"\((?:keydown|keyup|keypress)(?:\.[\w.]+)?\)\s*=")


def check_click_without_keyboard(content: str) -> Dict[str, Any]:
    lines = LineIndex(content)
    issues: List[dict] = []
    elements = 0
    for match in _NON_INTERACTIVE_TAG.finditer(content):
        attributes = match.group(2)
        if not _CLICK.search(attributes):
            continue
        elements += 1
        if _KEY_HANDLER.search(attributes):
            continue
        line = lines.line_of(match.start())
        issues.append(
            issue(
                format_issue(
                    "error",
                    "(click) handler without keyboard equivalent",
                    "Keyboard users cannot activate elements with mouse-only handlers",
                    fixes=(
                        "Add (keydown.enter) or (keydown.space) handler",
                        "Use button element instead",
                    ),
                    wcag="2.1.1",
                    link="https://www.w3.org/WAI/WCAG21/Understanding/keyboard",
                    element=f"<{match.group(1).lower()}>",
                    line=line,
                ),
                line,
            )
        )
    return {"pass": not issues, "issues": issues, "elementsFound": elements}


HTML_CHECKS = (
    CheckDescriptor(
        name="imageAlt",
        tier="basic",
        file_type="html",
        fn=check_image_alt,
        weight=get_weight("imageAlt"),
        description="Images have alt attributes",
        wcag="1.1.1",
    ),
    CheckDescriptor(
        name="buttonNames",
        tier="basic",
        file_type="html",
        fn=check_button_names,
        weight=get_weight("buttonNames"),
        description="Buttons have accessible names",
        wcag="4.1.2",
    ),
    CheckDescriptor(
        name="iframeTitles",
        tier="basic",
        file_type="html",
        fn=check_iframe_titles,
        weight=get_weight("iframeTitles"),
        description="Iframes have title or aria-label",
        wcag="4.1.2",
    ),
    CheckDescriptor(
        name="matIconAccessibility",
        tier="material",
        file_type="html",
        fn=check_mat_icon_accessibility,
        weight=get_weight("matIconAccessibility"),
        description="mat-icon is hidden from or labelled for assistive technology",
        wcag="1.1.1",
    ),
    CheckDescriptor(
        name="matFormFieldLabel",
        tier="material",
        file_type="html",
        fn=check_mat_form_field_label,
        weight=get_weight("matFormFieldLabel"),
        description="mat-form-field contains a mat-label",
        wcag="1.3.1",
    ),
    CheckDescriptor(
        name="clickWithoutKeyboard",
        tier="material",
        file_type="html",
        fn=check_click_without_keyboard,
        weight=get_weight("clickWithoutKeyboard"),
        description="Non-interactive elements with (click) have keyboard handlers",
        wcag="2.1.1",
    ),
)

__all__ = [
    "HTML_CHECKS",
    "check_button_names",
    "check_click_without_keyboard",
    "check_iframe_titles",
    "check_image_alt",
    "check_mat_form_field_label",
    "check_mat_icon_accessibility",
]
