"""Pipeline orchestration for page and component audits."""

from __future__ import annotations

import time
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Union

from .checks import discover_checks
from .config import AuditConfig, load_config
from .logging import get_logger
from .models import (
    AnalysisResult,
    CheckAggregate,
    CheckDescriptor,
    CheckOutcome,
    ComponentInfo,
    ComponentReport,
    Issue,
    OptimizedIssues,
    PageReport,
    ResolvedPage,
    RunResult,
    SourceFile,
    display_path,
)
from .optimizer import optimize_issues
from .registry import ComponentRegistry, read_source
from .resolver import PageResolver
from .routes import discover_routes
from .runner import CheckRunner
from .weights import calculate_audit_score


@dataclass
class RunSettings:
    """Effective settings for one analysis: configuration overridden by call arguments."""

    tier: str
    workers: Union[int, str]
    executor: str
    timeout: Optional[float]
    only: Optional[List[str]]
    disabled: List[str] = field(default_factory=list)
    optimize: bool = True
    exclude_paths: List[str] = field(default_factory=list)
    pages: List[Path] = field(default_factory=list)


@dataclass(frozen=True)
class _PageEntry:
    path: Path
    styles: Optional[Path] = None
    route: Optional[str] = None


class _SourceLoader:
    """Loads each distinct source once on the coordinating thread."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.sources: Dict[str, SourceFile] = {}
        self.warnings: List[str] = []
        self._failed: Set[Path] = set()

    def file(self, path: Path, file_type: str) -> Optional[str]:
        key = display_path(path, self.root)
        if key in self.sources:
            return key
        if path in self._failed:
            return None
        result = read_source(path)
        if not result.ok:
            self._failed.add(path)
            self.warnings.append(f"{key}: {result.error}")
            return None
        self.sources[key] = SourceFile(key=key, file_type=file_type, text=result.text or "", path=path)
        return key

    def inline(self, selector: str, file_type: str, text: str) -> str:
        suffix = "template" if file_type == "html" else "styles"
        key = f"inline:{selector}:{suffix}"
        if key not in self.sources:
            self.sources[key] = SourceFile(key=key, file_type=file_type, text=text, selector=selector)
        return key


class Orchestrator:
    """Coordinates registry, resolver, runner and optimizer into an ``AnalysisResult``."""

    def __init__(
        self,
        checks: Optional[Iterable[CheckDescriptor]] = None,
        runner: Optional[CheckRunner] = None,
    ) -> None:
        self._check_overrides = list(checks) if checks is not None else None
        self._runner = runner
        self.logger = get_logger("orchestrator")

    def analyze_pages(
        self,
        root: Union[str, Path],
        entries: Optional[Sequence[Union[str, Path]]] = None,
        *,
        tier: Optional[str] = None,
        workers: Union[int, str, None] = None,
        executor: Optional[str] = None,
        timeout: Optional[float] = None,
        only: Optional[Sequence[str]] = None,
        optimize: Optional[bool] = None,
        registry: Optional[ComponentRegistry] = None,
    ) -> AnalysisResult:
        """Audit the closure of each entry template with a single runner pass.

        Entries come from ``entries``, then ``pages`` in the configuration, and
        otherwise from the Angular routing files under ``root``.
        """
        started = time.perf_counter()
        root_path = Path(root).expanduser().resolve()
        settings = self.settings_for(
            root_path, tier=tier, workers=workers, executor=executor, timeout=timeout, only=only, optimize=optimize
        )
        self.logger.info("Starting page audit for %s", root_path)
        if registry is None:
            registry = ComponentRegistry.build(root_path, exclude_paths=settings.exclude_paths)
        warnings = list(registry.warnings)

        page_entries = _page_entries(root_path, entries, settings.pages)
        if not page_entries:
            discovery = discover_routes(root_path, registry, settings.exclude_paths)
            warnings.extend(discovery.warnings)
            page_entries = [
                _PageEntry(path=item.template, styles=item.styles, route=item.route.path)
                for item in discovery.entries
            ]
            if page_entries:
                self.logger.info(
                    "Using %d page(s) from %d routing file(s)",
                    len(page_entries),
                    len(discovery.routing_files),
                )
        if not page_entries:
            warnings.append("No page entries given")
            self.logger.warning("No page entries given or found in routing files for %s", root_path)

        resolver = PageResolver(registry)
        loader = _SourceLoader(root_path)
        resolved_pages: Dict[str, ResolvedPage] = {}
        page_keys: Dict[str, List[str]] = {}
        page_routes: Dict[str, Optional[str]] = {}
        for entry in page_entries:
            label = display_path(entry.path, root_path)
            resolved = resolver.resolve(entry.path, primary_styles=entry.styles)
            page_routes[label] = entry.route
            resolved_pages[label] = resolved
            warnings.extend(resolved.warnings)
            if resolved.is_empty:
                warnings.append(f"{label}: entry template not found or unreadable")
                page_keys[label] = []
                continue
            page_keys[label] = _load_page_sources(loader, resolved)
            self.logger.debug(
                "Resolved %s: %d templates, %d stylesheets, %d components",
                label,
                len(resolved.html_files),
                len(resolved.scss_files),
                len(resolved.components),
            )
        warnings.extend(loader.warnings)

        checks = self._checks(settings)
        run = self._run(loader.sources.values(), checks, settings)
        issues_by_key = _issues_by_source(run)

        pages = [
            PageReport(
                entry=label,
                resolved=resolved_pages[label],
                issues=[item for key in page_keys[label] for item in issues_by_key.get(key, [])],
                route=page_routes[label],
            )
            for label in sorted(page_keys)
        ]

        groups: Dict[str, List[str]] = defaultdict(list)
        for key, source in loader.sources.items():
            owner = source.selector or (registry.owner_of(source.path) if source.path else None)
            groups[owner or key].append(key)
        components = _component_reports(groups, registry, run, issues_by_key)

        scanned: Set[str] = set()
        for resolved in resolved_pages.values():
            scanned.update(resolved.components)

        return self._finish(
            mode="pages",
            root=root_path,
            settings=settings,
            checks=checks,
            run=run,
            components=components,
            components_scanned=len(scanned),
            pages=pages,
            optimization=optimize_issues(pages, registry, enabled=settings.optimize),
            warnings=warnings,
            started=started,
        )

    def analyze_components(
        self,
        root: Union[str, Path],
        *,
        tier: Optional[str] = None,
        workers: Union[int, str, None] = None,
        executor: Optional[str] = None,
        timeout: Optional[float] = None,
        only: Optional[Sequence[str]] = None,
        registry: Optional[ComponentRegistry] = None,
    ) -> AnalysisResult:
        """Audit every registered component's own templates and styles."""
        started = time.perf_counter()
        root_path = Path(root).expanduser().resolve()
        settings = self.settings_for(
            root_path, tier=tier, workers=workers, executor=executor, timeout=timeout, only=only
        )
        self.logger.info("Starting component audit for %s", root_path)
        if registry is None:
            registry = ComponentRegistry.build(root_path, exclude_paths=settings.exclude_paths)
        warnings = list(registry.warnings)
        if not len(registry):
            warnings.append("No components found; is this an Angular project?")

        loader = _SourceLoader(root_path)
        groups: Dict[str, List[str]] = {}
        for selector in sorted(registry):
            keys = _load_component_sources(loader, registry[selector])
            if keys:
                groups[selector] = keys
        warnings.extend(loader.warnings)

        checks = self._checks(settings)
        run = self._run(loader.sources.values(), checks, settings)
        components = _component_reports(groups, registry, run, _issues_by_source(run))

        return self._finish(
            mode="components",
            root=root_path,
            settings=settings,
            checks=checks,
            run=run,
            components=components,
            components_scanned=len(groups),
            pages=[],
            optimization=None,
            warnings=warnings,
            started=started,
        )

    def settings_for(
        self,
        root: Path,
        *,
        tier: Optional[str] = None,
        workers: Union[int, str, None] = None,
        executor: Optional[str] = None,
        timeout: Optional[float] = None,
        only: Optional[Sequence[str]] = None,
        optimize: Optional[bool] = None,
    ) -> RunSettings:
        """Merge ``.ngaudit.yml`` under ``root`` with explicit overrides."""
        config: AuditConfig = load_config(root)
        enabled = list(only) if only else list(config.checks.enabled)
        return RunSettings(
            tier=tier or config.tier,
            workers=workers if workers is not None else config.runner.workers,
            executor=executor or config.runner.executor,
            timeout=timeout if timeout is not None else config.runner.timeout,
            only=enabled or None,
            disabled=list(config.checks.disabled),
            optimize=config.optimize if optimize is None else optimize,
            exclude_paths=list(config.exclude_paths),
            pages=list(config.pages),
        )

    def _checks(self, settings: RunSettings) -> List[CheckDescriptor]:
        if self._check_overrides is not None:
            return list(self._check_overrides)
        return discover_checks(enabled=settings.only)

    def _run(
        self,
        sources: Iterable[SourceFile],
        checks: Sequence[CheckDescriptor],
        settings: RunSettings,
    ) -> RunResult:
        if self._runner is not None:
            return self._runner.run(
                sources, checks, tier=settings.tier, only=settings.only, exclude=settings.disabled
            )
        with CheckRunner(
            workers=settings.workers, executor=settings.executor, timeout=settings.timeout
        ) as runner:
            return runner.run(
                sources, checks, tier=settings.tier, only=settings.only, exclude=settings.disabled
            )

    def _finish(
        self,
        *,
        mode: str,
        root: Path,
        settings: RunSettings,
        checks: Sequence[CheckDescriptor],
        run: RunResult,
        components: List[ComponentReport],
        components_scanned: int,
        pages: List[PageReport],
        optimization: Optional[OptimizedIssues],
        warnings: List[str],
        started: float,
    ) -> AnalysisResult:
        totals: Dict[str, CheckAggregate] = {}
        for (_, check), outcome in run.results.items():
            totals.setdefault(check, CheckAggregate()).add(_aggregate(outcome))
        audit = calculate_audit_score(totals, {check.name: check.weight for check in checks})

        result = AnalysisResult(
            mode=mode,
            tier=settings.tier,
            root=str(root),
            files_scanned=len(run.sources),
            components_scanned=components_scanned,
            components=components,
            pages=pages,
            check_failures=run.failures,
            audit=audit,
            optimization=optimization,
            warnings=warnings,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
            generated_at=datetime.now(UTC).isoformat(),
        )
        self.logger.info(
            "Audit finished: %d issue(s) in %d component(s), score %d",
            result.total_issues,
            result.component_count,
            result.audit_score,
        )
        return result


def _page_entries(
    root: Path,
    entries: Optional[Sequence[Union[str, Path]]],
    configured: Sequence[Path],
) -> List[_PageEntry]:
    candidates = list(entries) if entries else list(configured)
    resolved: Dict[Path, None] = {}
    for candidate in candidates:
        path = Path(candidate).expanduser()
        if not path.is_absolute():
            path = root / path
        resolved.setdefault(path.resolve(), None)
    return [_PageEntry(path=path) for path in resolved]


def _load_page_sources(loader: _SourceLoader, resolved: ResolvedPage) -> List[str]:
    keys: List[Optional[str]] = []
    keys.extend(loader.file(path, "html") for path in resolved.html_files)
    keys.extend(loader.inline(item.selector, "html", item.text) for item in resolved.inline_templates)
    keys.extend(loader.file(path, "scss") for path in resolved.scss_files)
    keys.extend(loader.inline(item.selector, "scss", item.text) for item in resolved.inline_styles)
    return [key for key in keys if key is not None]


def _load_component_sources(loader: _SourceLoader, info: ComponentInfo) -> List[str]:
    keys: List[Optional[str]] = []
    if info.template_url is not None and info.template_url.is_file():
        keys.append(loader.file(info.template_url, "html"))
    elif info.template is not None:
        keys.append(loader.inline(info.selector, "html", info.template))
    for style_path in info.style_urls:
        if style_path.is_file():
            keys.append(loader.file(style_path, "scss"))
    if info.styles:
        keys.append(loader.inline(info.selector, "scss", info.styles))
    return [key for key in keys if key is not None]


def _issues_by_source(run: RunResult) -> Dict[str, List[Issue]]:
    issues: Dict[str, List[Issue]] = defaultdict(list)
    for (key, check), outcome in run.results.items():
        source = run.sources[key]
        for finding in outcome.findings:
            issues[key].append(
                Issue(
                    check=check,
                    message=finding.message,
                    file=key if source.path is not None else None,
                    selector=source.selector,
                    line=finding.line,
                )
            )
    return issues


def _aggregate(outcome: CheckOutcome) -> CheckAggregate:
    errors = sum(1 for finding in outcome.findings if finding.message.startswith("[Error]"))
    return CheckAggregate(
        elements_found=outcome.elements_found,
        issues=len(outcome.findings),
        errors=errors,
        warnings=len(outcome.findings) - errors,
    )


def _component_reports(
    groups: Mapping[str, List[str]],
    registry: ComponentRegistry,
    run: RunResult,
    issues_by_key: Mapping[str, List[Issue]],
) -> List[ComponentReport]:
    """Build reports for groups with at least one issue, sorted by selector or file."""
    keys_by_source: Dict[str, List[str]] = defaultdict(list)
    for key, check in run.results:
        keys_by_source[key].append(check)

    reports: List[ComponentReport] = []
    for owner, keys in groups.items():
        issues = [item for key in keys for item in issues_by_key.get(key, [])]
        if not issues:
            continue
        info = registry.get(owner)
        aggregates: Dict[str, CheckAggregate] = {}
        for key in keys:
            for check in keys_by_source.get(key, []):
                aggregates.setdefault(check, CheckAggregate()).add(_aggregate(run.results[(key, check)]))
        reports.append(
            ComponentReport(
                name=info.name if info else owner,
                selector=info.selector if info else None,
                ts_file=display_path(info.file_path, registry.root) if info else None,
                files=[key for key in keys if not key.startswith("inline:")],
                issues=issues,
                check_aggregates=aggregates,
            )
        )
    return sorted(reports, key=lambda report: report.sort_key)


__all__ = ["Orchestrator", "RunSettings"]
