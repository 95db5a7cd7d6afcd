# subsplit/progress.py
"""
Terminal progress reporting for the split engine.

Renders a Rich progress bar on stderr, so stdout stays reserved for the
resulting commit id. Warnings are printed as plain "warning:" lines.
"""

from __future__ import annotations

from typing import Optional

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    TaskID,
    TextColumn,
    TimeRemainingColumn,
)

from subsplit.engine import CommitState, ProgressEvent, SplitObserver


_DONE_STATES = (CommitState.SKIPPED, CommitState.MAPPED)


class ProgressReporter(SplitObserver):
    """
    Shows "<done>/<total>", percentage and time remaining per processed commit.

    The bar starts on the first event, when the total is known. Skipped
    commits count as done.
    """

    def __init__(self, console: Optional[Console] = None, enabled: bool = True) -> None:
        self.console = console or Console(stderr=True)
        self.enabled = enabled
        self.synthesized = 0
        self.skipped = 0
        self.progress: Optional[Progress] = None
        self.task_id: Optional[TaskID] = None

    def on_state(self, event: ProgressEvent) -> None:
        if self.enabled and self.progress is None:
            self._start(event.total)

        if event.state not in _DONE_STATES:
            return

        if event.state == CommitState.MAPPED:
            self.synthesized += 1
        else:
            self.skipped += 1

        if self.progress is not None and self.task_id is not None:
            self.progress.update(
                self.task_id,
                completed=event.index + 1,
                status=f"{self.synthesized} new, {self.skipped} reused",
            )

    def on_warning(self, message: str) -> None:
        # Printed through the console so it lands above a live bar
        self.console.print(f"warning: {message}", markup=False, highlight=False, soft_wrap=True)

    def finish(self) -> None:
        if self.progress is not None:
            self.progress.stop()
            self.progress = None
            self.task_id = None

    def _start(self, total: int) -> None:
        self.progress = Progress(
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            "[progress.percentage]{task.percentage:>3.0f}%",
            "•",
            TimeRemainingColumn(),
            "•",
            TextColumn("{task.fields[status]}"),
            console=self.console,
            refresh_per_second=10,
        )
        self.progress.start()
        self.task_id = self.progress.add_task("Splitting", total=total, status="")
