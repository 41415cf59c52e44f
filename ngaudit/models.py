"""Core data models shared across ngaudit components."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

TIERS: Tuple[str, ...] = ("basic", "material", "full")
FILE_TYPES: Tuple[str, ...] = ("html", "scss")

CheckFunction = Callable[..., Any]


@dataclass(frozen=True)
class ComponentInfo:
    """Metadata extracted from a single component declaration."""

    selector: str
    file_path: Path
    component_dir: Path
    template_url: Optional[Path] = None
    template: Optional[str] = None
    style_urls: Tuple[Path, ...] = ()
    styles: Optional[str] = None
    class_name: Optional[str] = None

    @property
    def name(self) -> str:
        return self.class_name or self.selector

    def owned_files(self) -> Tuple[Path, ...]:
        files: List[Path] = []
        if self.template_url is not None:
            files.append(self.template_url)
        files.extend(self.style_urls)
        return tuple(files)


@dataclass(frozen=True)
class ReadResult:
    """Outcome of reading one source file; either text or an error is set."""

    path: Path
    text: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.text is not None


@dataclass(frozen=True)
class InlineSource:
    """Template or style text declared inline on a component."""

    selector: str
    text: str


@dataclass(frozen=True)
class ResolvedPage:
    """Closure of templates and styles reachable from one entry template."""

    entry: Optional[Path]
    html_files: Tuple[Path, ...] = ()
    scss_files: Tuple[Path, ...] = ()
    components: Tuple[str, ...] = ()
    inline_templates: Tuple[InlineSource, ...] = ()
    inline_styles: Tuple[InlineSource, ...] = ()
    warnings: Tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.html_files or self.scss_files or self.components)

    def to_dict(self, root: Optional[Path] = None) -> Dict[str, Any]:
        return {
            "entry": display_path(self.entry, root) if self.entry else None,
            "htmlFiles": sorted(display_path(path, root) for path in self.html_files),
            "scssFiles": sorted(display_path(path, root) for path in self.scss_files),
            "components": sorted(self.components),
            "inlineTemplates": sorted(item.selector for item in self.inline_templates),
            "inlineStyles": sorted(item.selector for item in self.inline_styles),
        }


@dataclass(frozen=True)
class CheckDescriptor:
    """A pluggable check and the metadata used to dispatch it."""

    name: str
    tier: str
    file_type: str
    fn: CheckFunction
    weight: int = 5
    rule_id: Optional[str] = None
    description: str = ""
    wcag: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "tier": self.tier,
            "type": self.file_type,
            "weight": self.weight,
            "ruleId": self.rule_id or self.name,
            "description": self.description,
            "wcag": self.wcag,
        }


@dataclass(frozen=True)
class Finding:
    """Single message reported by a check, before it is tied to a source."""

    message: str
    line: Optional[int] = None


@dataclass(frozen=True)
class CheckOutcome:
    """Normalized result of running one check over one source."""

    passed: bool
    findings: Tuple[Finding, ...] = ()
    elements_found: int = 0
    error: Optional[str] = None

    @property
    def failed_to_run(self) -> bool:
        return self.error is not None


@dataclass(frozen=True)
class SourceFile:
    """Pre-loaded text handed to the runner; workers never read from disk."""

    key: str
    file_type: str
    text: str
    path: Optional[Path] = None
    selector: Optional[str] = None


@dataclass(frozen=True)
class Issue:
    """A finding attributed to a check and a file or inline component source."""

    check: str
    message: str
    file: Optional[str] = None
    selector: Optional[str] = None
    line: Optional[int] = None

    @property
    def source(self) -> str:
        if self.file is not None:
            return self.file
        return f"inline:{self.selector}"

    @property
    def severity(self) -> str:
        return "error" if self.message.startswith("[Error]") else "warning"

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"check": self.check, "message": self.message}
        if self.file is not None:
            data["file"] = self.file
        if self.selector is not None:
            data["selector"] = self.selector
        if self.line is not None:
            data["line"] = self.line
        return data

    def sort_key(self) -> Tuple[str, str, int, str]:
        return (self.source, self.check, self.line or 0, self.message)


@dataclass(frozen=True)
class CheckFailure:
    """A check that raised while running on one source."""

    source: str
    check: str
    error: str

    def to_dict(self) -> Dict[str, str]:
        return {"source": self.source, "check": self.check, "error": self.error}


@dataclass
class RunResult:
    """Canonical per-(source, check) results produced by the runner."""

    results: Dict[Tuple[str, str], CheckOutcome] = field(default_factory=dict)
    sources: Dict[str, SourceFile] = field(default_factory=dict)

    @property
    def total_checks(self) -> int:
        return len(self.results)

    @property
    def failures(self) -> List[CheckFailure]:
        return [
            CheckFailure(source=key, check=check, error=outcome.error or "")
            for (key, check), outcome in self.results.items()
            if outcome.failed_to_run
        ]

    def summary(self) -> Dict[str, int]:
        passed = sum(1 for outcome in self.results.values() if outcome.passed and not outcome.error)
        errors = sum(1 for outcome in self.results.values() if outcome.error)
        return {
            "totalFiles": len(self.sources),
            "totalChecks": self.total_checks,
            "passed": passed,
            "failed": self.total_checks - passed - errors,
            "errors": errors,
        }


@dataclass
class CheckAggregate:
    """Per-check counters accumulated for a component or a whole run."""

    elements_found: int = 0
    issues: int = 0
    errors: int = 0
    warnings: int = 0

    def add(self, other: "CheckAggregate") -> None:
        self.elements_found += other.elements_found
        self.issues += other.issues
        self.errors += other.errors
        self.warnings += other.warnings

    def to_dict(self) -> Dict[str, int]:
        return {
            "elementsFound": self.elements_found,
            "issues": self.issues,
            "errors": self.errors,
            "warnings": self.warnings,
        }


@dataclass
class ComponentReport:
    """Issues and aggregates for one component (or an unowned file)."""

    name: str
    selector: Optional[str]
    ts_file: Optional[str]
    files: List[str] = field(default_factory=list)
    issues: List[Issue] = field(default_factory=list)
    check_aggregates: Dict[str, CheckAggregate] = field(default_factory=dict)

    @property
    def passed(self) -> bool:
        return not any(issue.severity == "error" for issue in self.issues)

    @property
    def sort_key(self) -> str:
        return self.selector or self.name

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "selector": self.selector,
            "tsFile": self.ts_file,
            "files": sorted(self.files),
            "passed": self.passed,
            "issues": [issue.to_dict() for issue in sorted(self.issues, key=Issue.sort_key)],
            "checkAggregates": {
                name: self.check_aggregates[name].to_dict()
                for name in sorted(self.check_aggregates)
            },
        }


@dataclass
class PageReport:
    """Closure and raw issues for one entry template."""

    entry: str
    resolved: ResolvedPage
    issues: List[Issue] = field(default_factory=list)
    route: Optional[str] = None

    def to_dict(self, root: Optional[Path] = None) -> Dict[str, Any]:
        data = self.resolved.to_dict(root)
        data["entry"] = self.entry
        data["route"] = self.route
        data["issues"] = [issue.to_dict() for issue in sorted(self.issues, key=Issue.sort_key)]
        data["issueCount"] = len(self.issues)
        return data


@dataclass(frozen=True)
class RootCauseIssue:
    """One issue reported once for every page that includes its source."""

    issue: Issue
    component: Optional[str]
    affected_pages: Tuple[str, ...]

    @property
    def page_count(self) -> int:
        return len(self.affected_pages)

    def to_dict(self) -> Dict[str, Any]:
        data = self.issue.to_dict()
        data["component"] = self.component
        data["affectedPages"] = list(self.affected_pages)
        data["pageCount"] = self.page_count
        return data


@dataclass
class OptimizedIssues:
    """Optimizer output: collapsed root causes plus untouched page-local issues."""

    enabled: bool
    root_causes: List[RootCauseIssue] = field(default_factory=list)
    page_issues: Dict[str, List[Issue]] = field(default_factory=dict)
    original_count: int = 0

    @property
    def optimized_count(self) -> int:
        return len(self.root_causes) + sum(len(issues) for issues in self.page_issues.values())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "originalCount": self.original_count,
            "optimizedCount": self.optimized_count,
            "rootCauses": [item.to_dict() for item in self.root_causes],
            "pageIssues": {
                page: [issue.to_dict() for issue in sorted(issues, key=Issue.sort_key)]
                for page, issues in sorted(self.page_issues.items())
            },
        }


@dataclass
class AnalysisResult:
    """Final result object consumed by formatters, the CLI and the service."""

    mode: str
    tier: str
    root: str
    files_scanned: int
    components_scanned: int
    components: List[ComponentReport] = field(default_factory=list)
    pages: List[PageReport] = field(default_factory=list)
    check_failures: List[CheckFailure] = field(default_factory=list)
    audit: Mapping[str, Any] = field(default_factory=dict)
    optimization: Optional[OptimizedIssues] = None
    warnings: List[str] = field(default_factory=list)
    duration_ms: float = 0.0
    generated_at: str = ""

    @property
    def component_count(self) -> int:
        return sum(1 for component in self.components if component.issues)

    @property
    def total_issues(self) -> int:
        return sum(len(component.issues) for component in self.components)

    @property
    def audit_score(self) -> int:
        return int(self.audit.get("score", 100))

    @property
    def passed(self) -> bool:
        return all(component.passed for component in self.components)

    def to_dict(self) -> Dict[str, Any]:
        root = Path(self.root)
        return {
            "mode": self.mode,
            "tier": self.tier,
            "root": self.root,
            "filesScanned": self.files_scanned,
            "totalComponentsScanned": self.components_scanned,
            "componentCount": self.component_count,
            "totalIssues": self.total_issues,
            "auditScore": self.audit_score,
            "audits": list(self.audit.get("audits", [])),
            "components": [component.to_dict() for component in self.components],
            "pages": [page.to_dict(root) for page in self.pages],
            "checkFailures": [failure.to_dict() for failure in self.check_failures],
            "optimization": self.optimization.to_dict() if self.optimization else None,
            "warnings": list(self.warnings),
            "analysisTime": self.duration_ms,
            "timestamp": self.generated_at,
        }


def display_path(path: Optional[Path], root: Optional[Path] = None) -> str:
    """Return a POSIX path, relative to ``root`` when it lives underneath it."""
    if path is None:
        return ""
    if root is not None:
        try:
            return path.relative_to(root).as_posix()
        except ValueError:
            pass
    return path.as_posix()
