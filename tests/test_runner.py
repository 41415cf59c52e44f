"""Tests for the parallel check runner."""

from __future__ import annotations

import random
import time
from concurrent.futures import Future

import pytest

from ngaudit.checks import BUILTIN_CHECKS
from ngaudit.errors import RunnerError
from ngaudit.models import CheckDescriptor, SourceFile
from ngaudit.runner import CheckRunner, default_workers, run_checks


def _count_divs(text: str) -> dict:
    count = text.count("<div")
    issues = [f"[Warning] div #{index}" for index in range(count)]
    return {"pass": not issues, "issues": issues, "elementsFound": count}


def _jittery(text: str) -> dict:
    time.sleep(random.uniform(0, 0.005))
    return _count_divs(text)


def _explode(text: str) -> dict:
    raise ValueError("boom")


def _slow(text: str) -> dict:
    time.sleep(0.3)
    return {"pass": True, "issues": []}


def _scss_rule(text: str) -> dict:
    return {"pass": True, "issues": [], "elementsFound": text.count("{")}


HTML_CHECK = CheckDescriptor(name="divs", tier="basic", file_type="html", fn=_jittery)
SCSS_CHECK = CheckDescriptor(name="rules", tier="basic", file_type="scss", fn=_scss_rule)


def _sources(count: int = 12) -> list[SourceFile]:
    sources = [
        SourceFile(key=f"src/page-{index:02d}.html", file_type="html", text="<div></div>" * index)
        for index in range(count)
    ]
    sources.append(SourceFile(key="src/styles.scss", file_type="scss", text="a {} b {}"))
    sources.append(SourceFile(key="inline:app-chip:template", file_type="html", text="<div>", selector="app-chip"))
    return sources


def test_results_are_sorted_and_complete() -> None:
    result = run_checks(_sources(), [HTML_CHECK, SCSS_CHECK], workers=1)

    keys = list(result.results)
    assert keys == sorted(keys)
    assert len(keys) == 14
    assert result.results[("src/styles.scss", "rules")].elements_found == 2
    assert ("src/styles.scss", "divs") not in result.results
    assert result.results[("src/page-03.html", "divs")].elements_found == 3


def test_excluded_checks_are_not_dispatched() -> None:
    result = run_checks(_sources(3), [HTML_CHECK, SCSS_CHECK], workers=1, exclude=["DIVS"])

    assert list(result.results) == [("src/styles.scss", "rules")]


def test_parallel_matches_sequential() -> None:
    checks = [HTML_CHECK, SCSS_CHECK]
    sources = _sources(24)
    random.shuffle(sources)

    sequential = run_checks(sources, checks, workers=1)
    parallel = run_checks(sources, checks, workers=4)

    assert list(parallel.results.items()) == list(sequential.results.items())
    assert list(parallel.sources) == list(sequential.sources)


def test_process_pool_matches_sequential() -> None:
    sources = [
        SourceFile(key=f"src/p{index}.html", file_type="html", text='<img src="a.png">' * index + "<button></button>")
        for index in range(8)
    ]
    sources.append(SourceFile(key="src/app.scss", file_type="scss", text="a:focus { outline: none; }"))

    sequential = run_checks(sources, BUILTIN_CHECKS, tier="full", workers=1)
    parallel = run_checks(sources, BUILTIN_CHECKS, tier="full", workers=3, executor="process")

    assert list(parallel.results.items()) == list(sequential.results.items())
    assert not parallel.failures


def test_failing_check_only_fails_its_own_item() -> None:
    exploding = CheckDescriptor(name="explode", tier="basic", file_type="html", fn=_explode)

    result = run_checks(_sources(3), [HTML_CHECK, exploding], workers=2)

    failures = result.failures
    assert len(failures) == 4
    assert {failure.check for failure in failures} == {"explode"}
    assert all("ValueError: boom" in failure.error for failure in failures)
    assert result.results[("src/page-02.html", "divs")].passed is False
    assert result.results[("src/page-02.html", "divs")].error is None
    assert result.summary()["errors"] == 4


def test_tier_and_name_filters_apply_before_dispatch() -> None:
    full_only = CheckDescriptor(name="fancy", tier="full", file_type="html", fn=_count_divs)

    basic = run_checks(_sources(2), [HTML_CHECK, full_only], tier="basic", workers=1)
    only = run_checks(_sources(2), [HTML_CHECK, full_only], tier="full", only=["fancy"], workers=1)

    assert {check for _, check in basic.results} == {"divs"}
    assert {check for _, check in only.results} == {"fancy"}


def test_timeout_raises_runner_error() -> None:
    slow = CheckDescriptor(name="slow", tier="basic", file_type="html", fn=_slow)
    sources = [SourceFile(key=f"p{index}.html", file_type="html", text="") for index in range(6)]

    with pytest.raises(RunnerError, match="exceeded"):
        run_checks(sources, [slow], workers=2, timeout=0.05)


def test_sequential_timeout_raises_runner_error() -> None:
    slow = CheckDescriptor(name="slow", tier="basic", file_type="html", fn=_slow)
    sources = [SourceFile(key=f"p{index}.html", file_type="html", text="") for index in range(3)]

    with pytest.raises(RunnerError) as excinfo:
        run_checks(sources, [slow], workers=1, timeout=0.1)

    assert excinfo.value.work_item is not None


def test_broken_pool_raises_runner_error(monkeypatch: pytest.MonkeyPatch) -> None:
    runner = CheckRunner(workers=2)

    class _BrokenPool:
        def submit(self, *args, **kwargs):
            future: Future = Future()
            future.set_exception(RuntimeError("worker died"))
            return future

        def shutdown(self, wait: bool = True, cancel_futures: bool = False) -> None:
            pass

    monkeypatch.setattr(runner, "_ensure_pool", lambda: _BrokenPool())

    with pytest.raises(RunnerError, match="worker died") as excinfo:
        runner.run(_sources(3), [HTML_CHECK])

    assert excinfo.value.work_item is not None


def test_status_and_shutdown() -> None:
    with CheckRunner(workers=2) as runner:
        runner.run(_sources(4), [HTML_CHECK])
        status = runner.status()
        assert status["workers"] == 2
        assert status["runs"] == 1
        assert status["completed"] == 5
        assert status["running"] is False
        assert status["poolActive"] is True

    assert runner.status()["poolActive"] is False


def test_default_workers_leaves_one_cpu(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("ngaudit.runner.os.cpu_count", lambda: 8)
    assert default_workers() == 7
    monkeypatch.setattr("ngaudit.runner.os.cpu_count", lambda: 1)
    assert default_workers() == 1
    assert CheckRunner().workers == 1


def test_unknown_executor_is_rejected() -> None:
    with pytest.raises(ValueError):
        CheckRunner(executor="fibers")
