"""
Recalculation cascade.

Public API:
    - recompute: Recompute every derived field of one trade
    - recompute_many: Recompute a sequence of trades in one pass
    - apply_edit: Apply a field edit and run the cascade it needs
    - derive_position_status: Status implied by quantities
    - ChunkedRecalculator: Chunked bulk recompute with progress and cancellation
    - RichProgressReporter: Rich progress bar for ChunkedRecalculator
"""

from tradejournal.services.recalc.batch import DEFAULT_CHUNK_SIZE, ChunkedRecalculator
from tradejournal.services.recalc.models import (
    ANNOTATION_FIELDS,
    BatchProgress,
    FieldEdit,
    RecalcContext,
    TradeField,
)
from tradejournal.services.recalc.progress import RichProgressReporter, create_recalc_progress
from tradejournal.services.recalc.service import (
    apply_edit,
    apply_field_value,
    derive_position_status,
    recompute,
    recompute_many,
)

__all__ = [
    "ANNOTATION_FIELDS",
    "DEFAULT_CHUNK_SIZE",
    "BatchProgress",
    "ChunkedRecalculator",
    "FieldEdit",
    "RecalcContext",
    "RichProgressReporter",
    "TradeField",
    "apply_edit",
    "apply_field_value",
    "create_recalc_progress",
    "derive_position_status",
    "recompute",
    "recompute_many",
]
