"""ngaudit: static accessibility audits for Angular component trees."""

from .models import AnalysisResult, ComponentInfo, ResolvedPage
from .orchestrator import Orchestrator
from .registry import ComponentRegistry, find_component_selectors
from .report import normalize_result, result_digest
from .resolver import PageResolver, resolve_page
from .runner import CheckRunner, run_checks

__version__ = "0.1.0"

__all__ = [
    "AnalysisResult",
    "CheckRunner",
    "ComponentInfo",
    "ComponentRegistry",
    "Orchestrator",
    "PageResolver",
    "ResolvedPage",
    "find_component_selectors",
    "normalize_result",
    "resolve_page",
    "result_digest",
    "run_checks",
]
