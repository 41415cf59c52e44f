"""Source tree walking shared by the component registry and the scanner CLI."""

from __future__ import annotations

import os
from dataclasses import dataclass
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Sequence

from .config import CONFIG_FILENAME, ConfigError, load_config
from .logging import get_logger

# Build output, dependency and tool caches that never hold authored components.
_EXCLUDED_DIRS = frozenset(
    {
        ".git",
        ".hg",
        ".svn",
        ".angular",
        ".nx",
        ".cache",
        ".idea",
        ".vscode",
        "node_modules",
        "bower_components",
        "dist",
        "build",
        "out-tsc",
        "coverage",
        "e2e",
        "tmp",
    }
)

_logger = get_logger("scanner")


@dataclass(frozen=True)
class IgnoreRule:
    """A single gitignore-style exclusion; ``origin`` names where it was declared."""

    pattern: str
    origin: str = "pattern"
    negate: bool = False
    directory_only: bool = False
    anchored: bool = False

    @classmethod
    def parse(cls, line: str, origin: str = "pattern") -> Optional["IgnoreRule"]:
        text = line.strip()
        if not text or text.startswith("#"):
            return None
        negate = text.startswith("!")
        if negate:
            text = text[1:]
        directory_only = text.endswith("/")
        text = text.rstrip("/")
        # Any remaining slash ties the pattern to the scan root.
        anchored = "/" in text
        text = text.lstrip("/")
        if not text:
            return None
        return cls(
            pattern=text,
            origin=origin,
            negate=negate,
            directory_only=directory_only,
            anchored=anchored,
        )

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        if self.directory_only and not is_dir:
            return False
        if self.anchored:
            return fnmatchcase(rel_path, self.pattern)
        # Directories are pruned as the walk descends, so the last segment is enough.
        return fnmatchcase(rel_path.rsplit("/", 1)[-1], self.pattern)


class IgnoreRules:
    """Ordered rules where, as in git, the last matching rule decides."""

    def __init__(self, rules: Iterable[IgnoreRule] = ()) -> None:
        self._rules = tuple(rules)

    def __iter__(self) -> Iterator[IgnoreRule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def ignored(self, rel_path: str, is_dir: bool) -> bool:
        verdict = False
        for rule in self._rules:
            if rule.matches(rel_path, is_dir):
                verdict = not rule.negate
        return verdict


def _parse_lines(lines: Iterable[str], origin: str) -> List[IgnoreRule]:
    return [rule for rule in (IgnoreRule.parse(line, origin) for line in lines) if rule is not None]


def _gitignore_rules(root: Path) -> List[IgnoreRule]:
    path = root / ".gitignore"
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return []
    except (OSError, UnicodeDecodeError) as exc:
        _logger.debug("Ignoring unreadable %s: %s", path, exc)
        return []
    return _parse_lines(text.splitlines(), ".gitignore")


def _config_rules(root: Path) -> List[IgnoreRule]:
    try:
        config = load_config(root)
    except ConfigError as exc:
        _logger.warning("Ignoring unreadable configuration in %s: %s", root, exc)
        return []
    return _parse_lines(config.exclude_paths, CONFIG_FILENAME)


def load_ignore_rules(root: Path, extra_patterns: Sequence[str] = ()) -> IgnoreRules:
    """Collect rules from .gitignore, then .ngaudit.yml, then ``extra_patterns``."""
    rules = _gitignore_rules(root)
    rules.extend(_config_rules(root))
    rules.extend(_parse_lines(extra_patterns, "exclude_paths"))
    if rules:
        _logger.debug("Loaded %d ignore rule(s) for %s", len(rules), root)
    return IgnoreRules(rules)


def iter_source_files(
    root: Path,
    suffixes: Sequence[str],
    rules: Optional[IgnoreRules] = None,
) -> Iterator[Path]:
    """Yield files under ``root`` with one of ``suffixes``, in sorted walk order.

    Unreadable directories are skipped; the walk itself never raises.
    """
    rules = rules or IgnoreRules()
    wanted = tuple(suffixes)

    def _on_error(exc: OSError) -> None:
        _logger.debug("Skipping unreadable directory %s: %s", exc.filename, exc)

    for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
        current = Path(dirpath)
        prefix = current.relative_to(root).as_posix()
        prefix = "" if prefix == "." else f"{prefix}/"

        dirnames[:] = [
            name
            for name in sorted(dirnames)
            if name not in _EXCLUDED_DIRS and not rules.ignored(prefix + name, True)
        ]
        for name in sorted(filenames):
            if name.endswith(wanted) and not rules.ignored(prefix + name, False):
                yield current / name


__all__ = ["IgnoreRule", "IgnoreRules", "iter_source_files", "load_ignore_rules"]
