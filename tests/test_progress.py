"""Tests for the Rich progress reporter."""

import io

from rich.console import Console

from subsplit.engine import CommitState, ProgressEvent
from subsplit.progress import ProgressReporter

from .conftest import oid


def _console():
    return Console(file=io.StringIO(), force_terminal=False, width=120)


def _event(index, state, total=4):
    return ProgressEvent(index, total, oid(str(index)), state)


def test_counts_done_commits():
    reporter = ProgressReporter(console=_console())

    reporter.on_state(_event(0, CommitState.PENDING))
    reporter.on_state(_event(0, CommitState.MAPPED))
    reporter.on_state(_event(1, CommitState.PENDING))
    reporter.on_state(_event(1, CommitState.SKIPPED))
    reporter.finish()

    assert reporter.synthesized == 1
    assert reporter.skipped == 1


def test_final_state_is_rendered_on_finish():
    console = _console()
    reporter = ProgressReporter(console=console)

    for index in range(2):
        reporter.on_state(_event(index, CommitState.PENDING, total=2))
        reporter.on_state(_event(index, CommitState.MAPPED, total=2))
    reporter.finish()

    output = console.file.getvalue()
    assert "Splitting" in output
    assert "2/2" in output
    assert "100%" in output


def test_intermediate_states_do_not_advance():
    reporter = ProgressReporter(console=_console())

    for state in (CommitState.PENDING, CommitState.RESOLVING_PARENTS, CommitState.SYNTHESIZING):
        reporter.on_state(_event(0, state))

    assert reporter.progress.tasks[0].completed == 0
    reporter.finish()
    assert reporter.progress is None


def test_warning_lines():
    console = _console()
    reporter = ProgressReporter(console=console, enabled=False)

    reporter.on_warning("author name is empty, using committer name '[Grace]'")

    assert console.file.getvalue() == "warning: author name is empty, using committer name '[Grace]'\n"


def test_disabled_reporter_only_prints_warnings():
    console = _console()
    reporter = ProgressReporter(console=console, enabled=False)

    reporter.on_state(_event(0, CommitState.MAPPED))
    reporter.on_warning("careful")
    reporter.finish()

    assert reporter.progress is None
    assert reporter.synthesized == 1
    assert console.file.getvalue() == "warning: careful\n"
