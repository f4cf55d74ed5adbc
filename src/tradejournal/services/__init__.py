"""Trade journal services package.

- lots: Trade/lot models, lot gathering and the generic FIFO matcher
- recalc: Recalculation cascade, field edits and chunked bulk recompute
"""
