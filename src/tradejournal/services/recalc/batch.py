"""
Chunked bulk recompute.

Recomputes a large set of trades in fixed-size chunks so the host can keep
its event loop responsive. The host owns scheduling: it passes a callable
that runs a function "later" (an idle callback, a timer, a task queue) and
the recalculator re-schedules itself after each chunk until it is done or
cancelled.

Example:
    >>> recalc = ChunkedRecalculator(trades, context, chunk_size=50, on_progress=print)
    >>> recalc.start(loop.call_soon)  # or: results = recalc.run()
    >>> recalc.cancel()               # stops before the next chunk
"""

from collections.abc import Callable, Mapping, Sequence

import structlog

from tradejournal.services.lots.models import Trade
from tradejournal.services.recalc.models import BatchProgress, RecalcContext, TradeField
from tradejournal.services.recalc.service import context_for_trade, recompute
from tradejournal.system.config import SystemConfig, get_system_config

logger = structlog.get_logger()

DEFAULT_CHUNK_SIZE = 50

ProgressCallback = Callable[[BatchProgress], None]
CompletionCallback = Callable[[list[Trade]], None]
Scheduler = Callable[[Callable[[], None]], None]


class ChunkedRecalculator:
    """
    Recompute trades chunk by chunk with progress and cancellation.

    Trades are processed in input order. Progress is reported after every
    chunk and never goes backwards. Cancelling stops before the next chunk;
    trades already recomputed stay available through `results`.
    """

    def __init__(
        self,
        trades: Sequence[Trade],
        context: RecalcContext,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        overrides: Mapping[str, frozenset[TradeField]] | None = None,
        on_progress: ProgressCallback | None = None,
        on_complete: CompletionCallback | None = None,
    ) -> None:
        """
        Args:
            trades: Trades to recompute
            context: Shared recalculation context
            chunk_size: Trades per chunk (at least 1)
            overrides: Per-trade override sets keyed by trade id
            on_progress: Called with a BatchProgress after every chunk
            on_complete: Called once with all results when the last chunk is done

        Raises:
            ValueError: If chunk_size is less than 1
        """
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be at least 1, got {chunk_size}")

        self._trades = tuple(trades)
        self._context = context
        self._chunk_size = chunk_size
        self._overrides = dict(overrides or {})
        self._on_progress = on_progress
        self._on_complete = on_complete

        self._results: list[Trade] = []
        self._cursor = 0
        self._started = False
        self._cancelled = False
        self._completed = False
        self._schedule: Scheduler | None = None

    @classmethod
    def from_system_config(
        cls,
        trades: Sequence[Trade],
        context: RecalcContext,
        config: SystemConfig | None = None,
        **kwargs,
    ) -> "ChunkedRecalculator":
        """Recalculator using the configured import chunk size."""
        config = config or get_system_config()
        return cls(trades, context, chunk_size=config.engine.import_chunk_size, **kwargs)

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    @property
    def results(self) -> list[Trade]:
        """Trades recomputed so far, in input order."""
        return list(self._results)

    @property
    def progress(self) -> BatchProgress:
        return BatchProgress(processed=self._cursor, total=len(self._trades))

    @property
    def is_done(self) -> bool:
        return self._completed

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    def step(self) -> bool:
        """
        Recompute the next chunk.

        Returns:
            True while more chunks remain, False once done or cancelled
        """
        if self._cancelled or self._completed:
            return False

        if not self._started:
            self._started = True
            logger.info(
                "recalc.batch_started",
                total=len(self._trades),
                chunk_size=self._chunk_size,
            )

        chunk = self._trades[self._cursor : self._cursor + self._chunk_size]
        for trade in chunk:
            self._results.append(recompute(trade, context_for_trade(trade, self._context, self._overrides)))
        self._cursor += len(chunk)

        progress = self.progress
        logger.debug("recalc.batch_chunk_done", processed=progress.processed, total=progress.total)
        if self._on_progress is not None:
            self._on_progress(progress)

        if self._cursor >= len(self._trades):
            self._completed = True
            logger.info("recalc.batch_completed", total=len(self._trades))
            if self._on_complete is not None:
                self._on_complete(self.results)
            return False

        return True

    def start(self, schedule: Scheduler) -> None:
        """
        Run all chunks through a host scheduler.

        Args:
            schedule: Callable that arranges for its argument to be called later
        """
        self._schedule = schedule
        schedule(self._tick)

    def _tick(self) -> None:
        if self.step() and self._schedule is not None:
            self._schedule(self._tick)

    def run(self) -> list[Trade]:
        """Process every remaining chunk synchronously and return the results."""
        while self.step():
            pass
        return self.results

    def cancel(self) -> None:
        """Stop before the next chunk; already recomputed trades are kept."""
        if self._cancelled or self._completed:
            return
        self._cancelled = True
        logger.info(
            "recalc.batch_cancelled",
            processed=self._cursor,
            total=len(self._trades),
        )
