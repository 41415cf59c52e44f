"""Expand a page entry template into the closure of templates and styles it renders."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterator, List, Optional, Set, Tuple

from .logging import get_logger
from .models import ComponentInfo, InlineSource, ResolvedPage
from .registry import ComponentRegistry, find_component_selectors, read_source

_logger = get_logger("resolver")


class _OrderedPaths:
    """Insertion-ordered path set."""

    def __init__(self) -> None:
        self._items: Dict[Path, None] = {}

    def add(self, path: Path) -> bool:
        if path in self._items:
            return False
        self._items[path] = None
        return True

    def as_tuple(self) -> Tuple[Path, ...]:
        return tuple(self._items)


class PageResolver:
    """Resolves entry templates against one registry snapshot.

    The traversal uses an explicit stack so deep component trees cannot exhaust
    the interpreter's recursion limit; each selector is expanded at most once
    per :meth:`resolve` call, which also makes cycles terminate.
    """

    def __init__(self, registry: ComponentRegistry) -> None:
        self.registry = registry

    def resolve(self, entry: Optional[Path], primary_styles: Optional[Path] = None) -> ResolvedPage:
        if entry is None:
            return ResolvedPage(entry=None)
        entry = Path(entry).expanduser().resolve()

        entry_source = read_source(entry)
        if not entry_source.ok:
            _logger.debug("Entry template %s unavailable: %s", entry, entry_source.error)
            return ResolvedPage(entry=entry, warnings=(f"{entry}: {entry_source.error}",))

        html_files = _OrderedPaths()
        scss_files = _OrderedPaths()
        components: List[str] = []
        inline_templates: List[InlineSource] = []
        inline_styles: List[InlineSource] = []
        warnings: List[str] = []
        visited: Set[str] = set()
        styled: Set[str] = set()

        def add_styles(info: ComponentInfo) -> None:
            for style_path in info.style_urls:
                if style_path.is_file():
                    scss_files.add(style_path)
            if info.styles and info.selector not in styled:
                styled.add(info.selector)
                inline_styles.append(InlineSource(selector=info.selector, text=info.styles))

        html_files.add(entry)
        if primary_styles is not None:
            primary_styles = Path(primary_styles).expanduser().resolve()
            if primary_styles.is_file():
                scss_files.add(primary_styles)
        # The component rendering the entry template styles the page as well.
        owner = self.registry.owner_of(entry)
        if owner is not None and owner in self.registry:
            add_styles(self.registry[owner])

        # One frame per template being scanned; the top frame is the innermost template.
        stack: List[Iterator[str]] = [iter(find_component_selectors(entry_source.text or ""))]
        while stack:
            selector = next(stack[-1], None)
            if selector is None:
                stack.pop()
                continue
            if selector in visited:
                continue
            visited.add(selector)
            info = self.registry.get(selector)
            if info is None:
                continue
            components.append(selector)

            child_html: Optional[str] = None
            if info.template_url is not None:
                if info.template_url.is_file():
                    child = read_source(info.template_url)
                    if child.ok:
                        html_files.add(info.template_url)
                        child_html = child.text or ""
                    else:
                        message = f"{info.template_url}: {child.error}"
                        warnings.append(message)
                        _logger.warning("Skipping template %s", message)
                else:
                    _logger.debug("Template %s for <%s> does not exist", info.template_url, selector)
            elif info.template is not None:
                inline_templates.append(InlineSource(selector=selector, text=info.template))
                child_html = info.template

            add_styles(info)

            if child_html is not None:
                stack.append(iter(find_component_selectors(child_html)))

        return ResolvedPage(
            entry=entry,
            html_files=html_files.as_tuple(),
            scss_files=scss_files.as_tuple(),
            components=tuple(components),
            inline_templates=tuple(inline_templates),
            inline_styles=tuple(inline_styles),
            warnings=tuple(warnings),
        )


def resolve_page(
    entry: Optional[Path],
    registry: ComponentRegistry,
    primary_styles: Optional[Path] = None,
) -> ResolvedPage:
    """Resolve ``entry`` against ``registry``; see :class:`PageResolver`."""
    return PageResolver(registry).resolve(entry, primary_styles=primary_styles)


__all__ = ["PageResolver", "resolve_page"]
