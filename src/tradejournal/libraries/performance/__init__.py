"""Trade metrics library for the journal.

1. **Models** (`models.py`): Pydantic breakdown structures
   - Valuation, EntryRewardRisk, RewardRiskSummary
   - LotHoldingPeriod, HoldingPeriodSummary, ExitAttribution, TradeIssue

2. **Calculators**: Pure functions over validated lots
   - valuation: average prices, quantities, position size, FIFO realized P&L
   - reward_risk: per-entry R:R with risk-free detection, both aggregates
   - holding_period: FIFO day counts and the status-dependent display value
   - portfolio_impact: basis-aware impact %, open heat, cumulative impact
   - attribution: realized P&L per month (cash or accrual)
   - validation: user-facing data-quality issues

Design Principles:
    - Decimal precision for money, int for quantities
    - Explicit edge cases: zero portfolio -> 0%, zero risk -> Infinity R:R
    - One FIFO matcher shared by every calculator
"""

from tradejournal.libraries.performance.attribution import attribute_exits, group_pl_by_month
from tradejournal.libraries.performance.holding_period import (
    calculate_holding_period,
    calculate_lot_holding_periods,
)
from tradejournal.libraries.performance.models import (
    INFINITY,
    EntryRewardRisk,
    ExitAttribution,
    HoldingPeriodSummary,
    LotHoldingPeriod,
    RewardRiskSummary,
    TradeIssue,
    Valuation,
)
from tradejournal.libraries.performance.portfolio_impact import (
    PortfolioSizeResolver,
    calculate_cumulative_impact,
    calculate_open_heat_pct,
    calculate_pf_impact,
    calculate_total_open_heat,
    calculate_trade_open_heat,
    calculate_trade_pf_impact,
    resolve_reference_date,
)
from tradejournal.libraries.performance.reward_risk import (
    calculate_entry_reward_risk,
    calculate_reward_risk,
    summarize_reward_risk,
)
from tradejournal.libraries.performance.validation import validate_trade
from tradejournal.libraries.performance.valuation import (
    calculate_allocation_pct,
    calculate_average_price,
    calculate_realized_pl_fifo,
    calculate_sl_pct,
    calculate_stock_move_pct,
    calculate_unrealized_pl,
    calculate_valuation,
)

__all__ = [
    # Models
    "INFINITY",
    "EntryRewardRisk",
    "ExitAttribution",
    "HoldingPeriodSummary",
    "LotHoldingPeriod",
    "RewardRiskSummary",
    "TradeIssue",
    "Valuation",
    # Valuation
    "calculate_allocation_pct",
    "calculate_average_price",
    "calculate_realized_pl_fifo",
    "calculate_sl_pct",
    "calculate_stock_move_pct",
    "calculate_unrealized_pl",
    "calculate_valuation",
    # Reward:risk
    "calculate_entry_reward_risk",
    "calculate_reward_risk",
    "summarize_reward_risk",
    # Holding period
    "calculate_holding_period",
    "calculate_lot_holding_periods",
    # Portfolio impact
    "PortfolioSizeResolver",
    "calculate_cumulative_impact",
    "calculate_open_heat_pct",
    "calculate_pf_impact",
    "calculate_total_open_heat",
    "calculate_trade_open_heat",
    "calculate_trade_pf_impact",
    "resolve_reference_date",
    # Attribution and validation
    "attribute_exits",
    "group_pl_by_month",
    "validate_trade",
]
