"""Rich progress display for bulk recomputes."""

from types import TracebackType

from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskID, TaskProgressColumn, TimeElapsedColumn

from tradejournal.services.recalc.models import BatchProgress


def create_recalc_progress(console: Console) -> Progress:
    """
    Create a Rich Progress instance for bulk recomputes.

    Args:
        console: Rich Console instance

    Returns:
        Configured Progress instance
    """
    return Progress(
        SpinnerColumn(),
        "[progress.description]{task.description}",
        BarColumn(),
        TaskProgressColumn(),
        TimeElapsedColumn(),
        console=console,
    )


class RichProgressReporter:
    """
    Progress callback that drives a Rich progress bar.

    Example:
        >>> with RichProgressReporter(total=len(trades)) as reporter:
        ...     ChunkedRecalculator(trades, context, on_progress=reporter).run()
    """

    def __init__(self, total: int, console: Console | None = None, description: str = "Recalculating trades"):
        self._progress = create_recalc_progress(console or Console())
        self._task: TaskID = self._progress.add_task(description, total=total)

    def __enter__(self) -> "RichProgressReporter":
        self._progress.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self._progress.stop()

    def __call__(self, progress: BatchProgress) -> None:
        self._progress.update(self._task, completed=progress.processed, total=progress.total)

    @property
    def completed(self) -> float:
        return self._progress.tasks[0].completed
