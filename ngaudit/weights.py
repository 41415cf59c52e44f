"""Lighthouse-style audit weights and scoring.

Weight 10 marks critical failures (WCAG A), 7 important ones (WCAG AA, high
impact), 5 moderate best practices and 3 minor or informational findings.
"""

from __future__ import annotations

import math
from typing import Any, Dict, List, Mapping

from .models import CheckAggregate

DEFAULT_WEIGHT = 5

WEIGHTS: Dict[str, int] = {
    # html
    "buttonNames": 10,
    "imageAlt": 10,
    "inputImageAlt": 10,
    "formLabels": 10,
    "ariaRoles": 10,
    "ariaAttributes": 10,
    "ariaHiddenBody": 10,
    "duplicateIdAria": 10,
    "metaRefresh": 10,
    "metaViewport": 10,
    "videoCaptions": 10,
    "tableHeaders": 10,
    "blinkElement": 10,
    "marqueeElement": 10,
    "accesskeyUnique": 7,
    "linkNames": 7,
    "htmlHasLang": 7,
    "iframeTitles": 7,
    "listStructure": 7,
    "dlStructure": 7,
    "tabindex": 7,
    "objectAlt": 7,
    "emptyTableHeader": 7,
    "uniqueIds": 7,
    "formFieldName": 7,
    "scopeAttrMisuse": 7,
    "autoplayMedia": 7,
    "autofocusUsage": 5,
    "headingOrder": 3,
    "skipLink": 3,
    # material
    "matFormFieldLabel": 10,
    "matSelectPlaceholder": 10,
    "matCheckboxLabel": 10,
    "matRadioGroupLabel": 10,
    "matSliderLabel": 10,
    "matSlideToggleLabel": 10,
    "matAutocompleteLabel": 10,
    "matDatepickerLabel": 10,
    "matChipListLabel": 10,
    "matIconAccessibility": 7,
    "matButtonType": 7,
    "matProgressSpinnerLabel": 7,
    "matProgressBarLabel": 7,
    "matTooltipKeyboard": 7,
    "matDialogFocus": 7,
    "matExpansionHeader": 7,
    "matTabLabel": 7,
    "matStepLabel": 7,
    "matMenuTrigger": 7,
    "matTableHeaders": 7,
    "matPaginatorLabel": 7,
    "matSidenavA11y": 7,
    "matTreeA11y": 7,
    "matBadgeDescription": 7,
    "matButtonToggleLabel": 7,
    "matListSelectionLabel": 7,
    "matSortHeaderAnnounce": 7,
    "matBottomSheetA11y": 5,
    "matSnackbarPoliteness": 5,
    # angular
    "clickWithoutKeyboard": 7,
    "clickWithoutRole": 7,
    "routerLinkNames": 7,
    "asyncPipeAria": 5,
    "ngForTrackBy": 3,
    "innerHtmlUsage": 3,
    # cdk
    "cdkTrapFocusDialog": 7,
    "cdkLiveAnnouncer": 5,
    "cdkAriaDescriber": 5,
    # scss
    "colorContrast": 7,
    "focusStyles": 7,
    "outlineNoneWithoutAlt": 7,
    "hoverWithoutFocus": 7,
    "touchTargets": 5,
    "prefersReducedMotion": 5,
    "pointerEventsNone": 5,
    "smallFontSize": 3,
    "lineHeightTight": 3,
    "contentOverflow": 3,
    "userSelectNone": 3,
    "focusWithinSupport": 3,
    "textJustify": 3,
    "visibilityHiddenUsage": 3,
}


def get_weight(check_name: str, weights: Mapping[str, int] = WEIGHTS) -> int:
    return weights.get(check_name) or DEFAULT_WEIGHT


def calculate_audit_score(
    aggregates: Mapping[str, CheckAggregate],
    weights: Mapping[str, int] = WEIGHTS,
) -> Dict[str, Any]:
    """Score the run from per-check aggregates.

    Only checks that found at least one element are applicable, and only
    error-severity issues fail an audit. Audits are ordered failed first, then
    by descending weight, then by name.
    """
    total_weight = 0
    earned_weight = 0
    audits: List[Dict[str, Any]] = []

    for name in sorted(aggregates):
        stats = aggregates[name]
        if stats.elements_found <= 0:
            continue
        weight = get_weight(name, weights)
        total_weight += weight
        passed = stats.errors == 0
        if passed:
            earned_weight += weight
        audits.append(
            {
                "name": name,
                "weight": weight,
                "passed": passed,
                "elementsFound": stats.elements_found,
                "errors": stats.errors,
                "warnings": stats.warnings,
                "issues": stats.issues,
            }
        )

    audits.sort(key=lambda audit: (audit["passed"], -audit["weight"], audit["name"]))
    # Half-up rounding, so 12.5 scores 13.
    score = math.floor(earned_weight * 100 / total_weight + 0.5) if total_weight else 100
    return {
        "score": int(score),
        "earned": earned_weight,
        "total": total_weight,
        "passed": sum(1 for audit in audits if audit["passed"]),
        "failed": sum(1 for audit in audits if not audit["passed"]),
        "audits": audits,
    }


__all__ = ["DEFAULT_WEIGHT", "WEIGHTS", "calculate_audit_score", "get_weight"]
