"""Tests for cross-page root-cause collapsing."""

from __future__ import annotations

import pytest

from ngaudit.models import Issue, PageReport, ResolvedPage
from ngaudit.optimizer import optimize_issues
from ngaudit.registry import ComponentRegistry
from tests._fixtures.project_builder import ProjectBuilder

HEADER_HTML = "src/app/header/header.component.html"


@pytest.fixture
def registry(project_builder: ProjectBuilder) -> ComponentRegistry:
    project_builder.component("header", "app-header", "<header><button></button></header>")
    project_builder.component("chip", "app-chip", inline_template="<img src='chip.png'>")
    return project_builder.registry()


def _page(entry: str, *issues: Issue) -> PageReport:
    return PageReport(entry=entry, resolved=ResolvedPage(entry=None), issues=list(issues))


def _header_issue(message: str = "[Error] Button missing accessible name") -> Issue:
    return Issue(check="buttonNames", message=message, file=HEADER_HTML, line=1)


def test_shared_component_issue_collapses_to_one_root_cause(registry: ComponentRegistry) -> None:
    local = Issue(check="imageAlt", message="[Error] Image missing alt attribute", file="src/app/a.html", line=3)
    pages = [
        _page("src/app/c.html", _header_issue()),
        _page("src/app/a.html", _header_issue(), local),
        _page("src/app/b.html", _header_issue()),
    ]

    result = optimize_issues(pages, registry)

    assert result.original_count == 4
    assert len(result.root_causes) == 1
    cause = result.root_causes[0]
    assert cause.component == "app-header"
    assert cause.affected_pages == ("src/app/a.html", "src/app/b.html", "src/app/c.html")
    assert cause.page_count == 3
    assert result.page_issues["src/app/a.html"] == [local]
    assert result.page_issues["src/app/b.html"] == []
    assert result.optimized_count == 2


def test_inline_issue_collapses_under_its_selector(registry: ComponentRegistry) -> None:
    inline = Issue(check="imageAlt", message="[Error] Image missing alt attribute", selector="app-chip", line=1)

    result = optimize_issues([_page("a.html", inline), _page("b.html", inline)], registry)

    assert [cause.component for cause in result.root_causes] == ["app-chip"]


def test_unowned_repeats_stay_with_their_pages(registry: ComponentRegistry) -> None:
    shared = Issue(check="imageAlt", message="[Error] Image missing alt attribute", file="src/styles/shared.html")
    unknown_inline = Issue(check="imageAlt", message="[Error] x", selector="app-unknown")

    result = optimize_issues(
        [_page("a.html", shared, unknown_inline), _page("b.html", shared, unknown_inline)], registry
    )

    assert result.root_causes == []
    assert result.optimized_count == result.original_count == 4


def test_single_page_issue_is_not_a_root_cause(registry: ComponentRegistry) -> None:
    result = optimize_issues([_page("a.html", _header_issue()), _page("b.html")], registry)

    assert result.root_causes == []
    assert result.page_issues["a.html"] == [_header_issue()]


def test_repeated_issue_within_a_page_is_counted_per_occurrence(registry: ComponentRegistry) -> None:
    pages = [
        _page("a.html", _header_issue(), _header_issue()),
        _page("b.html", _header_issue()),
    ]

    result = optimize_issues(pages, registry)

    assert len(result.root_causes) == 1
    assert result.root_causes[0].affected_pages == ("a.html", "b.html")
    assert result.page_issues["a.html"] == [_header_issue()]
    assert result.optimized_count == 2


def test_root_causes_are_ordered_by_page_count(registry: ComponentRegistry) -> None:
    wide = _header_issue("[Error] wide")
    narrow = _header_issue("[Error] narrow")
    pages = [
        _page("a.html", wide, narrow),
        _page("b.html", wide, narrow),
        _page("c.html", wide),
    ]

    result = optimize_issues(pages, registry)

    assert [cause.issue.message for cause in result.root_causes] == ["[Error] wide", "[Error] narrow"]


def test_disabled_optimizer_passes_everything_through(registry: ComponentRegistry) -> None:
    pages = [_page("a.html", _header_issue()), _page("b.html", _header_issue())]

    result = optimize_issues(pages, registry, enabled=False)

    assert result.enabled is False
    assert result.root_causes == []
    assert result.optimized_count == result.original_count == 2
    assert result.to_dict()["pageIssues"]["a.html"][0]["check"] == "buttonNames"
