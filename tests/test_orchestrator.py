"""Tests for ngaudit.orchestrator."""

from __future__ import annotations

from pathlib import Path

import pytest

from ngaudit.errors import RunnerError
from ngaudit.models import CheckDescriptor
from ngaudit.orchestrator import Orchestrator
from ngaudit.report import result_digest
from ngaudit.runner import CheckRunner
from tests._fixtures.project_builder import ProjectBuilder

HOME = "src/app/home/home.component.html"
ABOUT = "src/app/about/about.component.html"


@pytest.fixture
def audit_project(project_builder: ProjectBuilder) -> ProjectBuilder:
    project_builder.component(
        "home",
        "app-home",
        '<app-header></app-header>\n<img src="hero.png">\n<app-footer></app-footer>\n',
    )
    project_builder.component("about", "app-about", "<app-header></app-header>\n<p>About us</p>\n")
    project_builder.component(
        "header",
        "app-header",
        "<header>\n  <button></button>\n</header>\n",
        styles=["a:focus { outline: none; }\n"],
    )
    project_builder.component("footer", "app-footer", inline_template='<footer><img src="f.png"></footer>')
    return project_builder


def test_analyze_components_reports_components_with_issues(audit_project: ProjectBuilder) -> None:
    result = Orchestrator().analyze_components(audit_project.root, workers=1)

    assert result.mode == "components"
    assert result.tier == "material"
    assert result.components_scanned == 4
    assert result.files_scanned == 5
    assert [component.selector for component in result.components] == ["app-footer", "app-header", "app-home"]

    header = result.components[1]
    assert header.name == "HeaderComponent"
    assert header.ts_file == "src/app/header/header.component.ts"
    assert sorted(header.files) == [
        "src/app/header/header.component.html",
        "src/app/header/header.component.scss",
    ]
    assert sorted(issue.check for issue in header.issues) == [
        "buttonNames",
        "outlineNoneWithoutAlt",
        "outlineNoneWithoutAlt",
    ]
    assert header.check_aggregates["buttonNames"].errors == 1

    footer = result.components[0]
    assert footer.files == []
    assert footer.issues[0].selector == "app-footer"
    assert footer.issues[0].file is None

    assert result.total_issues == 5
    assert result.passed is False
    assert result.audit_score == 0
    assert {audit["name"] for audit in result.audit["audits"]} == {
        "buttonNames",
        "imageAlt",
        "outlineNoneWithoutAlt",
    }


def test_analyze_components_is_independent_of_worker_count(audit_project: ProjectBuilder) -> None:
    sequential = Orchestrator().analyze_components(audit_project.root, workers=1)
    parallel = Orchestrator().analyze_components(audit_project.root, workers=4)

    assert result_digest(parallel) == result_digest(sequential)


def test_analyze_pages_collapses_shared_header_issues(audit_project: ProjectBuilder) -> None:
    result = Orchestrator().analyze_pages(audit_project.root, [HOME, ABOUT], workers=1)

    assert [page.entry for page in result.pages] == [ABOUT, HOME]
    about, home = result.pages
    assert len(about.issues) == 3
    assert len(home.issues) == 5
    assert result.components_scanned == 2

    optimization = result.optimization
    assert optimization is not None
    assert optimization.original_count == 8
    assert len(optimization.root_causes) == 3
    assert {cause.component for cause in optimization.root_causes} == {"app-header"}
    assert all(cause.affected_pages == (ABOUT, HOME) for cause in optimization.root_causes)
    assert optimization.page_issues[ABOUT] == []
    assert sorted(issue.check for issue in optimization.page_issues[HOME]) == ["imageAlt", "imageAlt"]
    assert optimization.optimized_count == 5

    data = result.to_dict()
    assert data["pages"][1]["htmlFiles"] == [
        "src/app/header/header.component.html",
        HOME,
    ]
    assert data["pages"][1]["inlineTemplates"] == ["app-footer"]


def test_analyze_pages_is_independent_of_worker_count(audit_project: ProjectBuilder) -> None:
    sequential = Orchestrator().analyze_pages(audit_project.root, [HOME, ABOUT], workers=1)
    parallel = Orchestrator().analyze_pages(audit_project.root, [ABOUT, HOME], workers=4)

    assert result_digest(parallel) == result_digest(sequential)


def test_page_issues_without_optimizer(audit_project: ProjectBuilder) -> None:
    result = Orchestrator().analyze_pages(audit_project.root, [HOME, ABOUT], workers=1, optimize=False)

    assert result.optimization is not None
    assert result.optimization.enabled is False
    assert result.optimization.optimized_count == 8


def test_page_includes_entry_component_styles(project_builder: ProjectBuilder) -> None:
    project_builder.component("home", "app-home", "<p>home</p>\n", styles=["a:focus { outline: none; }\n"])

    result = Orchestrator().analyze_pages(project_builder.root, [HOME], workers=1)

    page = result.pages[0]
    assert page.to_dict(project_builder.path())["scssFiles"] == ["src/app/home/home.component.scss"]
    assert page.issues
    assert {issue.check for issue in page.issues} == {"outlineNoneWithoutAlt"}
    assert [component.selector for component in result.components] == ["app-home"]


def test_config_file_supplies_defaults(audit_project: ProjectBuilder) -> None:
    audit_project.write(
        {
            ".ngaudit.yml": f"""
                tier: basic
                pages:
                  - {HOME}
                runner:
                  workers: 1
                checks:
                  disabled: [buttonNames]
            """,
        }
    )

    result = Orchestrator().analyze_pages(audit_project.root)

    assert result.tier == "basic"
    assert [page.entry for page in result.pages] == [HOME]
    assert {issue.check for issue in result.pages[0].issues} == {"imageAlt"}


def test_arguments_override_config(audit_project: ProjectBuilder) -> None:
    audit_project.write({".ngaudit.yml": "tier: basic\n"})

    result = Orchestrator().analyze_components(
        audit_project.root, tier="material", only=["outlineNoneWithoutAlt"], workers=1
    )

    assert result.tier == "material"
    assert [component.selector for component in result.components] == ["app-header"]


def test_missing_entry_is_reported_as_a_warning(audit_project: ProjectBuilder) -> None:
    result = Orchestrator().analyze_pages(audit_project.root, ["src/app/missing.html"], workers=1)

    assert len(result.pages) == 1
    assert result.pages[0].issues == []
    assert any("missing.html" in warning for warning in result.warnings)
    assert result.files_scanned == 0


def test_no_entries_yields_no_pages(audit_project: ProjectBuilder) -> None:
    result = Orchestrator().analyze_pages(audit_project.root, workers=1)

    assert result.pages == []
    assert "No page entries given" in result.warnings


def test_empty_project_warns(tmp_path: Path) -> None:
    result = Orchestrator().analyze_components(tmp_path, workers=1)

    assert result.components == []
    assert result.audit_score == 100
    assert any("No components found" in warning for warning in result.warnings)


def test_custom_checks_and_failures_are_reported(audit_project: ProjectBuilder) -> None:
    def _count_paragraphs(text: str) -> dict:
        count = text.count("<p>")
        return {"pass": True, "issues": ["[Warning] paragraph"] * count, "elementsFound": count}

    def _explode(text: str) -> dict:
        raise RuntimeError("bad check")

    checks = [
        CheckDescriptor(name="paragraphs", tier="basic", file_type="html", fn=_count_paragraphs),
        CheckDescriptor(name="explode", tier="basic", file_type="scss", fn=_explode),
    ]

    result = Orchestrator(checks=checks).analyze_components(audit_project.root, workers=1)

    assert [component.selector for component in result.components] == ["app-about"]
    assert result.passed is True
    assert [failure.check for failure in result.check_failures] == ["explode"]
    assert result.check_failures[0].source == "src/app/header/header.component.scss"


def test_runner_errors_propagate(audit_project: ProjectBuilder) -> None:
    class _FailingRunner(CheckRunner):
        def run(self, sources, checks, tier="material", only=None, exclude=()):
            raise RunnerError("pool died", work_item=("a.html", "imageAlt"))

    with pytest.raises(RunnerError):
        Orchestrator(runner=_FailingRunner(workers=1)).analyze_components(audit_project.root)


def test_registry_can_be_reused(audit_project: ProjectBuilder) -> None:
    registry = audit_project.registry()
    orchestrator = Orchestrator()

    first = orchestrator.analyze_pages(audit_project.root, [HOME], workers=1, registry=registry)
    second = orchestrator.analyze_pages(audit_project.root, [HOME], workers=1, registry=registry)

    assert result_digest(first) == result_digest(second)


def test_pages_default_to_routed_components(project_builder: ProjectBuilder) -> None:
    project_builder.component("home", "app-home", '<img src="hero.png">\n')
    project_builder.write(
        {
            "src/app/app.routes.ts": """
                export const routes: Routes = [
                  { path: '', component: HomeComponent },
                  { path: 'lost', component: LostComponent },
                ];
            """,
        }
    )

    result = Orchestrator().analyze_pages(project_builder.root, workers=1)

    assert [(page.route, page.entry) for page in result.pages] == [("/", HOME)]
    assert [issue.check for issue in result.pages[0].issues] == ["imageAlt"]
    assert "No page entries given" not in result.warnings
    assert any("route /lost" in warning for warning in result.warnings)
    assert result.to_dict()["pages"][0]["route"] == "/"


def test_explicit_entries_skip_route_discovery(project_builder: ProjectBuilder) -> None:
    project_builder.component("home", "app-home", "<p>home</p>\n")
    project_builder.component("about", "app-about", "<p>about</p>\n")
    project_builder.write({"src/app/app.routes.ts": "const routes: Routes = [{ path: '', component: HomeComponent }];\n"})

    result = Orchestrator().analyze_pages(project_builder.root, [ABOUT], workers=1)

    assert [(page.route, page.entry) for page in result.pages] == [(None, ABOUT)]
