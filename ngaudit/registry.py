"""Component registry built from ``@Component`` declarations in a source tree."""

from __future__ import annotations

import re
from pathlib import Path
from typing import (
    Dict,
    Iterator,
    List,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    Tuple,
)

from .logging import get_logger
from .models import ComponentInfo, ReadResult
from .repo_scanner import IgnoreRules, iter_source_files, load_ignore_rules

_logger = get_logger("registry")

_DECORATOR_PATTERN = re.compile(r"@Component\s*\(\s*\{([\s\S]*?)\}\s*\)")
_SELECTOR_PATTERN = re.compile(r"\bselector\s*:\s*['\"`]([^'\"`]+)['\"`]")
_TEMPLATE_URL_PATTERN = re.compile(r"\btemplateUrl\s*:\s*['\"`]([^'\"`]+)['\"`]")
_INLINE_TEMPLATE_PATTERN = re.compile(r"\btemplate\s*:\s*`([\s\S]*?)`")
_STYLE_URLS_PATTERN = re.compile(r"\bstyleUrls\s*:\s*\[([\s\S]*?)\]")
_STYLE_URL_PATTERN = re.compile(r"\bstyleUrl\s*:\s*['\"`]([^'\"`]+)['\"`]")
_INLINE_STYLES_LIST_START = re.compile(r"\bstyles\s*:\s*\[")
_INLINE_STYLES_PATTERN = re.compile(r"\bstyles\s*:\s*`([\s\S]*?)`")
_QUOTED_PATTERN = re.compile(r"['\"]([^'\"]+)['\"]")
# String literals inside a styles list, or the bracket that closes it.
_STYLES_LIST_TOKEN = re.compile(r"""`([\s\S]*?)`|'((?:[^'\\\n]|\\.)*)'|"((?:[^"\\\n]|\\.)*)"|(\])""")
_CLASS_PATTERN = re.compile(r"export\s+(?:default\s+)?(?:abstract\s+)?class\s+([A-Za-z_$][\w$]*)")

_CUSTOM_TAG_PATTERN = re.compile(r"<([a-z][a-z0-9]*-[a-z0-9-]+)[\s>/]", re.IGNORECASE)

# Hyphenated names that are part of HTML, SVG or MathML, plus framework structural tags.
BUILTIN_HYPHENATED_TAGS = frozenset(
    {
        "annotation-xml",
        "color-profile",
        "font-face",
        "font-face-src",
        "font-face-uri",
        "font-face-format",
        "font-face-name",
        "missing-glyph",
        "linear-gradient",
        "radial-gradient",
        "clip-path",
        "color-interpolation",
        "color-rendering",
        "flood-color",
        "flood-opacity",
        "font-family",
        "font-size",
        "font-style",
        "font-variant",
        "font-weight",
        "ng-container",
        "ng-template",
        "ng-content",
    }
)

_COMPONENT_MARKER = "@Component"


class MetadataExtractor(Protocol):
    """Turns the text of one declaration file into component metadata."""

    def extract(self, text: str, file_path: Path) -> Tuple[List[ComponentInfo], List[str]]:
        """Return the components declared in ``text`` and any warnings."""


class DecoratorPatternExtractor:
    """Heuristic extractor reading ``@Component({...})`` blocks with regular expressions."""

    def extract(self, text: str, file_path: Path) -> Tuple[List[ComponentInfo], List[str]]:
        component_dir = file_path.parent
        components: List[ComponentInfo] = []
        warnings: List[str] = []

        for match in _DECORATOR_PATTERN.finditer(text):
            body = match.group(1)
            selector_match = _SELECTOR_PATTERN.search(body)
            if not selector_match:
                warnings.append(f"{file_path}: @Component without a selector skipped")
                continue
            selector = selector_match.group(1).strip()
            if not selector:
                warnings.append(f"{file_path}: @Component with an empty selector skipped")
                continue

            template_url: Optional[Path] = None
            template: Optional[str] = None
            url_match = _TEMPLATE_URL_PATTERN.search(body)
            if url_match:
                template_url = _resolve_reference(component_dir, url_match.group(1))
            else:
                inline_match = _INLINE_TEMPLATE_PATTERN.search(body)
                if inline_match:
                    template = inline_match.group(1)

            class_match = _CLASS_PATTERN.search(text, match.end())
            components.append(
                ComponentInfo(
                    selector=selector,
                    file_path=file_path,
                    component_dir=component_dir,
                    template_url=template_url,
                    template=template,
                    style_urls=tuple(self._style_urls(body, component_dir)),
                    styles=self._inline_styles(body),
                    class_name=class_match.group(1) if class_match else None,
                )
            )

        return components, warnings

    @staticmethod
    def _style_urls(body: str, component_dir: Path) -> List[Path]:
        urls: List[Path] = []
        list_match = _STYLE_URLS_PATTERN.search(body)
        if list_match:
            for item in _QUOTED_PATTERN.findall(list_match.group(1)):
                urls.append(_resolve_reference(component_dir, item))
        single_match = _STYLE_URL_PATTERN.search(body)
        if single_match:
            path = _resolve_reference(component_dir, single_match.group(1))
            if path not in urls:
                urls.append(path)
        return urls

    @staticmethod
    def _inline_styles(body: str) -> Optional[str]:
        list_start = _INLINE_STYLES_LIST_START.search(body)
        if list_start:
            blocks: List[str] = []
            # Brackets inside literals, as in ``button[disabled]``, do not close the list.
            for token in _STYLES_LIST_TOKEN.finditer(body, list_start.end()):
                if token.group(4):
                    break
                block = next(text for text in token.groups()[:3] if text is not None)
                if block.strip():
                    blocks.append(block)
            return "\n".join(blocks) if blocks else None
        single_match = _INLINE_STYLES_PATTERN.search(body)
        if single_match and single_match.group(1).strip():
            return single_match.group(1)
        return None


def _resolve_reference(component_dir: Path, reference: str) -> Path:
    return (component_dir / reference.strip()).resolve()


def read_source(path: Path) -> ReadResult:
    """Read a UTF-8 source file, reporting failures instead of raising."""
    try:
        return ReadResult(path=path, text=path.read_text(encoding="utf-8"))
    except UnicodeDecodeError as exc:
        return ReadResult(path=path, error=f"undecodable text ({exc.reason})")
    except OSError as exc:
        return ReadResult(path=path, error=exc.strerror or str(exc))


def find_component_selectors(html: str) -> List[str]:
    """Return custom element tags used in ``html``, lower-cased, in first-seen order."""
    seen: Dict[str, None] = {}
    for match in _CUSTOM_TAG_PATTERN.finditer(html):
        tag = match.group(1).lower()
        if tag in BUILTIN_HYPHENATED_TAGS:
            continue
        seen.setdefault(tag, None)
    return list(seen)


class ComponentRegistry(Mapping[str, ComponentInfo]):
    """Read-only selector -> ``ComponentInfo`` snapshot of a source tree.

    Building never raises. Anything that could not be read or parsed is skipped
    and described in :attr:`warnings`.
    """

    def __init__(
        self,
        root: Path,
        components: Mapping[str, ComponentInfo],
        *,
        warnings: Sequence[str] = (),
        exclude_paths: Sequence[str] = (),
        extractor: Optional[MetadataExtractor] = None,
    ) -> None:
        self._root = root
        self._components: Dict[str, ComponentInfo] = dict(components)
        self._warnings: Tuple[str, ...] = tuple(warnings)
        self._exclude_paths: Tuple[str, ...] = tuple(exclude_paths)
        self._extractor = extractor
        self._owners: Dict[Path, str] = {}
        for selector, info in self._components.items():
            for owned in info.owned_files():
                self._owners.setdefault(owned, selector)

    @classmethod
    def build(
        cls,
        root: Path,
        *,
        exclude_paths: Sequence[str] = (),
        extractor: Optional[MetadataExtractor] = None,
    ) -> "ComponentRegistry":
        extractor = extractor or DecoratorPatternExtractor()
        root = Path(root).expanduser()
        warnings: List[str] = []
        components: Dict[str, ComponentInfo] = {}

        if not root.is_dir():
            warnings.append(f"{root}: source root is missing or not a directory")
            _logger.warning("Source root %s is missing or not a directory", root)
            return cls(root, components, warnings=warnings, exclude_paths=exclude_paths, extractor=extractor)

        root = root.resolve()
        rules = load_ignore_rules(root, exclude_paths)
        for path in _declaration_files(root, rules):
            result = read_source(path)
            if not result.ok:
                warnings.append(f"{path}: {result.error}")
                _logger.warning("Skipping %s: %s", path, result.error)
                continue
            if _COMPONENT_MARKER not in (result.text or ""):
                continue

            found, file_warnings = extractor.extract(result.text or "", path)
            for message in file_warnings:
                _logger.debug("%s", message)
            warnings.extend(file_warnings)
            for info in found:
                previous = components.get(info.selector)
                if previous is not None and previous.file_path != info.file_path:
                    _logger.debug(
                        "Selector %s redeclared in %s (was %s)",
                        info.selector,
                        info.file_path,
                        previous.file_path,
                    )
                components[info.selector] = info

        _logger.debug("Registered %d components under %s", len(components), root)
        return cls(root, components, warnings=warnings, exclude_paths=exclude_paths, extractor=extractor)

    def rebuild(self) -> "ComponentRegistry":
        """Return a fresh registry built from the same root and settings."""
        return type(self).build(self._root, exclude_paths=self._exclude_paths, extractor=self._extractor)

    @property
    def root(self) -> Path:
        return self._root

    @property
    def warnings(self) -> Tuple[str, ...]:
        return self._warnings

    def owner_of(self, path: Path) -> Optional[str]:
        """Return the selector whose template or stylesheet is ``path``."""
        return self._owners.get(path)

    def stats(self) -> Dict[str, int]:
        infos = list(self._components.values())
        return {
            "total": len(infos),
            "with_template": sum(1 for info in infos if info.template_url is not None),
            "with_inline_template": sum(1 for info in infos if info.template is not None),
            "with_styles": sum(1 for info in infos if info.style_urls or info.styles),
        }

    def __getitem__(self, selector: str) -> ComponentInfo:
        return self._components[selector]

    def __iter__(self) -> Iterator[str]:
        return iter(self._components)

    def __len__(self) -> int:
        return len(self._components)

    def __repr__(self) -> str:
        return f"ComponentRegistry(root={str(self._root)!r}, components={len(self)})"


def _declaration_files(root: Path, rules: IgnoreRules) -> Iterator[Path]:
    for path in iter_source_files(root, (".ts",), rules):
        if path.name.endswith(".spec.ts") or path.name.endswith(".d.ts"):
            continue
        yield path


__all__ = [
    "BUILTIN_HYPHENATED_TAGS",
    "ComponentRegistry",
    "DecoratorPatternExtractor",
    "MetadataExtractor",
    "find_component_selectors",
    "read_source",
]
