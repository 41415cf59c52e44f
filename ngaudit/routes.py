"""Page discovery from Angular route definitions.

Routing files are read with the same heuristics as component declarations:
regular expressions and bracket matching, no TypeScript parser. Both NgModule
routing (``RouterModule.forRoot``/``forChild``) and standalone ``Routes``
arrays are recognised, including nested ``children`` and ``loadComponent``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from .logging import get_logger
from .models import ComponentInfo
from .registry import ComponentRegistry, read_source
from .repo_scanner import IgnoreRules, iter_source_files, load_ignore_rules

_logger = get_logger("routes")

ROUTING_SUFFIXES = (".routes.ts", "-routing.module.ts")

_ROUTES_ARRAY_PATTERN = re.compile(r"(?:export\s+)?const\s+\w+\s*:\s*Routes\s*=\s*\[")
_ROUTER_MODULE_PATTERN = re.compile(r"RouterModule\.for(?:Root|Child)\s*\(\s*\[")
_CHILDREN_PATTERN = re.compile(r"\bchildren\s*:\s*\[")
_PATH_PATTERN = re.compile(r"\bpath\s*:\s*['\"]([^'\"]*)['\"]")
_COMPONENT_PATTERN = re.compile(r"\bcomponent\s*:\s*([A-Za-z_$][\w$]*)")
_LOAD_COMPONENT_PATTERN = re.compile(
    r"\bloadComponent\s*:\s*\(\s*\)\s*=>\s*import\s*\(\s*['\"]([^'\"]+)['\"]\s*\)"
    r"(?:\s*\.then\s*\(\s*\(?\s*\w+\s*\)?\s*=>\s*\w+\.([A-Za-z_$][\w$]*)\s*\))?"
)
_LOAD_CHILDREN_PATTERN = re.compile(r"\bloadChildren\s*:\s*\(\s*\)\s*=>\s*import\s*\(\s*['\"]([^'\"]+)['\"]\s*\)")

_TEMPLATE_SUFFIXES = (".component.html", ".html")
_STYLE_SUFFIXES = (".component.scss", ".scss", ".component.css", ".css")


@dataclass(frozen=True)
class Route:
    """One routed component with its full, normalised URL path."""

    path: str
    routing_file: Path
    line: int
    component: Optional[str] = None
    import_path: Optional[str] = None
    export_name: Optional[str] = None
    load_children: Optional[str] = None

    @property
    def component_name(self) -> Optional[str]:
        return self.component or self.export_name

    @property
    def dedupe_key(self) -> Tuple[str, str]:
        return self.path, self.component_name or self.import_path or ""


@dataclass(frozen=True)
class RouteEntry:
    """A route mapped to the template and stylesheet that render it."""

    route: Route
    template: Path
    styles: Optional[Path] = None
    selector: Optional[str] = None


@dataclass
class RouteDiscovery:
    routing_files: List[Path] = field(default_factory=list)
    routes: List[Route] = field(default_factory=list)
    entries: List[RouteEntry] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def normalize_route_path(value: str) -> str:
    """Return ``value`` with exactly one leading slash and no repeated slashes."""
    stripped = re.sub(r"/+", "/", value.strip()).strip("/")
    return f"/{stripped}" if stripped else "/"


def join_route_paths(parent: str, child: str) -> str:
    if not parent:
        return normalize_route_path(child)
    if not child:
        return normalize_route_path(parent)
    return normalize_route_path(f"{parent}/{child}")


def _line_of(text: str, index: int) -> int:
    return text.count("\n", 0, index) + 1


def _balanced_end(text: str, start: int, opening: str = "[", closing: str = "]") -> Optional[int]:
    """Return the index just past the bracket matching ``text[start]``."""
    if start >= len(text) or text[start] != opening:
        return None
    depth = 0
    for index in range(start, len(text)):
        char = text[index]
        if char == opening:
            depth += 1
        elif char == closing:
            depth -= 1
            if depth == 0:
                return index + 1
    return None


def _top_level_objects(text: str, start: int, end: int) -> Iterator[Tuple[int, int]]:
    """Yield ``(start, end)`` spans of the objects directly inside ``text[start:end]``."""
    arrays = 0
    objects = 0
    object_start = -1
    for index in range(start, end):
        char = text[index]
        if char == "[":
            arrays += 1
        elif char == "]":
            arrays -= 1
        elif char == "{":
            if arrays == 1 and objects == 0:
                object_start = index
            objects += 1
        elif char == "}":
            objects -= 1
            if arrays == 1 and objects == 0 and object_start != -1:
                yield object_start, index + 1
                object_start = -1


def _routes_in_array(
    text: str,
    start: int,
    end: int,
    parent: str,
    routing_file: Path,
) -> Iterator[Route]:
    for object_start, object_end in _top_level_objects(text, start, end):
        body = text[object_start:object_end]
        children: Optional[Tuple[int, int]] = None
        own = body
        children_match = _CHILDREN_PATTERN.search(body)
        if children_match:
            bracket = children_match.end() - 1
            children_end = _balanced_end(body, bracket)
            if children_end is not None:
                children = (object_start + bracket, object_start + children_end)
                # Child properties must not be read as this route's own.
                own = body[: children_match.start()] + body[children_end:]

        path_match = _PATH_PATTERN.search(own)
        if path_match is None:
            _logger.debug("%s:%d: route without a path skipped", routing_file, _line_of(text, object_start))
            continue
        full_path = join_route_paths(parent, path_match.group(1))

        component_match = _COMPONENT_PATTERN.search(own)
        load_match = _LOAD_COMPONENT_PATTERN.search(own)
        children_import = _LOAD_CHILDREN_PATTERN.search(own)
        if component_match or load_match:
            yield Route(
                path=full_path,
                routing_file=routing_file,
                line=_line_of(text, object_start),
                component=component_match.group(1) if component_match else None,
                import_path=load_match.group(1) if load_match else None,
                export_name=load_match.group(2) if load_match else None,
                load_children=children_import.group(1) if children_import else None,
            )
        if children is not None:
            yield from _routes_in_array(text, children[0], children[1], full_path, routing_file)


def parse_routes(text: str, routing_file: Path) -> List[Route]:
    """Return the flattened routes declared in one routing file."""
    match = _ROUTES_ARRAY_PATTERN.search(text) or _ROUTER_MODULE_PATTERN.search(text)
    if match is None:
        return []
    start = match.end() - 1
    end = _balanced_end(text, start)
    if end is None:
        _logger.debug("%s: unterminated routes array", routing_file)
        return []
    return list(_routes_in_array(text, start, end, "", routing_file))


def find_routing_files(root: Path, rules: Optional[IgnoreRules] = None) -> List[Path]:
    return [path for path in iter_source_files(root, (".ts",), rules) if path.name.endswith(ROUTING_SUFFIXES)]


def _import_target(route: Route) -> Optional[Path]:
    if route.import_path is None:
        return None
    return (route.routing_file.parent / route.import_path).resolve()


def _declared_at(info: ComponentInfo, target: Path) -> bool:
    return target in (info.file_path.with_suffix(""), info.file_path.parent)


def _match_component(registry: ComponentRegistry, route: Route) -> Optional[ComponentInfo]:
    name = route.component_name
    named = [info for info in registry.values() if name and info.class_name == name]
    target = _import_target(route)
    if target is not None:
        located = [info for info in (named or registry.values()) if _declared_at(info, target)]
        if located:
            return located[0]
    return named[0] if named else None


def _first_existing(base: Path, suffixes: Sequence[str]) -> Optional[Path]:
    folders = [base, base.parent] if base.is_dir() else [base.parent]
    for folder in folders:
        for suffix in suffixes:
            candidate = folder / f"{base.name}{suffix}"
            if candidate.is_file():
                return candidate
    return None


def resolve_route(route: Route, registry: ComponentRegistry) -> Optional[RouteEntry]:
    """Map ``route`` to its template, preferring registry metadata over file naming."""
    info = _match_component(registry, route)
    if info is not None and info.template_url is not None and info.template_url.is_file():
        styles = next((path for path in info.style_urls if path.is_file()), None)
        return RouteEntry(route=route, template=info.template_url, styles=styles, selector=info.selector)

    target = _import_target(route)
    if target is None:
        return None
    template = _first_existing(target, _TEMPLATE_SUFFIXES)
    if template is None:
        return None
    return RouteEntry(
        route=route,
        template=template.resolve(),
        styles=_first_existing(target, _STYLE_SUFFIXES),
        selector=info.selector if info is not None else None,
    )


def discover_routes(
    root: Path,
    registry: ComponentRegistry,
    exclude_paths: Sequence[str] = (),
) -> RouteDiscovery:
    """Find routing files under ``root`` and map each route to a page entry.

    Routes whose component cannot be located are reported as warnings. When
    several routes render the same template, the first one in walk order wins.
    """
    discovery = RouteDiscovery()
    root = Path(root).expanduser()
    if not root.is_dir():
        return discovery
    root = root.resolve()

    discovery.routing_files = find_routing_files(root, load_ignore_rules(root, exclude_paths))
    seen: Dict[Tuple[str, str], None] = {}
    for routing_file in discovery.routing_files:
        source = read_source(routing_file)
        if not source.ok:
            discovery.warnings.append(f"{routing_file}: {source.error}")
            _logger.warning("Skipping routing file %s: %s", routing_file, source.error)
            continue
        for route in parse_routes(source.text or "", routing_file):
            if route.dedupe_key in seen:
                continue
            seen[route.dedupe_key] = None
            discovery.routes.append(route)

    templates: Dict[Path, None] = {}
    for route in discovery.routes:
        entry = resolve_route(route, registry)
        if entry is None:
            discovery.warnings.append(
                f"{route.routing_file}:{route.line}: route {route.path} "
                f"({route.component_name or route.import_path}) has no template"
            )
            continue
        if entry.template in templates:
            _logger.debug("Route %s shares template %s", route.path, entry.template)
            continue
        templates[entry.template] = None
        discovery.entries.append(entry)

    _logger.debug(
        "Discovered %d route(s), %d page entries in %d routing file(s)",
        len(discovery.routes),
        len(discovery.entries),
        len(discovery.routing_files),
    )
    return discovery


__all__ = [
    "ROUTING_SUFFIXES",
    "Route",
    "RouteDiscovery",
    "RouteEntry",
    "discover_routes",
    "find_routing_files",
    "join_route_paths",
    "normalize_route_path",
    "parse_routes",
    "resolve_route",
]
