"""
Analytics configuration.

Thresholds, goals and bonus rates are configuration inputs, read from the
environment (optionally through a `.env` file) so they can change without
touching the algorithms.

Environment variables (all optional; defaults in parentheses):
- RETAIL_ANALYTICS_SALES_GOAL (50): sales per seller per period
- RETAIL_ANALYTICS_REVENUE_GOAL (50000): revenue per seller per period
- RETAIL_ANALYTICS_BONUS_FULL_RATE (0.05): bonus rate when every goal is met
- RETAIL_ANALYTICS_BONUS_HALF_RATE (0.025): bonus rate when some goals are met
- RETAIL_ANALYTICS_SLOW_TURNOVER_THRESHOLD (50): turnover % below which a category is slow
- RETAIL_ANALYTICS_TURNOVER_WINDOW_DAYS (30)
- RETAIL_ANALYTICS_STALE_DAYS (30)
- RETAIL_ANALYTICS_PROMOTION_BASELINE_DAYS (30)
- RETAIL_ANALYTICS_OVERDUE_WARNING_DAYS (7)
- RETAIL_ANALYTICS_OVERDUE_CRITICAL_DAYS (30)
- RETAIL_ANALYTICS_INVENTORY_EVOLUTION_DAYS (30)
- RETAIL_ANALYTICS_STALE_ALERT_TIERS (30,60,90)
"""

from __future__ import annotations

import math
import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Callable, Optional, Tuple, TypeVar

from dotenv import load_dotenv

ENV_PREFIX = "RETAIL_ANALYTICS_"

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class GoalPolicy:
    """
    Seller goals and bonus rates.

    Bonus tiers: no goal met -> 0, some goals met -> half_rate, all goals met -> full_rate.
    """

    sales_goal: int = 50
    revenue_goal: Decimal = Decimal("50000")
    full_rate: Decimal = Decimal("0.05")
    half_rate: Decimal = Decimal("0.025")


@dataclass(frozen=True, slots=True)
class AnalyticsSettings:
    goal_policy: GoalPolicy = field(default_factory=GoalPolicy)
    slow_turnover_threshold: float = 50.0
    turnover_window_days: int = 30
    stale_days: int = 30
    promotion_baseline_days: int = 30
    overdue_warning_days: int = 7
    overdue_critical_days: int = 30
    inventory_evolution_days: int = 30
    stale_alert_tiers: Tuple[int, int, int] = (30, 60, 90)


def _read(name: str, parse: Callable[[str], T], default: T) -> T:
    key = ENV_PREFIX + name
    raw = os.getenv(key)
    if raw is None or not raw.strip():
        return default
    try:
        return parse(raw.strip())
    except (ValueError, InvalidOperation) as e:
        raise RuntimeError(
            f"Invalid value for environment variable {key}: {raw!r}. {e}"
        ) from e


def _positive_int(raw: str) -> int:
    value = int(raw)
    if value <= 0:
        raise ValueError("must be a positive integer")
    return value


def _finite_float(raw: str) -> float:
    value = float(raw)
    if not math.isfinite(value):
        raise ValueError("must be a finite number")
    return value


def _finite_decimal(raw: str) -> Decimal:
    value = Decimal(raw)
    if not value.is_finite():
        raise ValueError("must be a finite number")
    return value


def _tiers(raw: str) -> Tuple[int, int, int]:
    parts = tuple(_positive_int(p) for p in raw.split(","))
    if len(parts) != 3 or not parts[0] < parts[1] < parts[2]:
        raise ValueError("expected three increasing day counts, e.g. 30,60,90")
    return parts  # type: ignore[return-value]


def load_settings(env_path: Optional[Path] = None) -> AnalyticsSettings:
    """
    Build AnalyticsSettings from the environment.

    Args:
        env_path: Optional `.env` file to load first (existing variables win).

    Raises:
        RuntimeError: If a variable is set but cannot be parsed.
    """
    if env_path is not None:
        load_dotenv(dotenv_path=env_path)

    defaults = AnalyticsSettings()
    policy_defaults = defaults.goal_policy

    policy = GoalPolicy(
        sales_goal=_read("SALES_GOAL", _positive_int, policy_defaults.sales_goal),
        revenue_goal=_read("REVENUE_GOAL", _finite_decimal, policy_defaults.revenue_goal),
        full_rate=_read("BONUS_FULL_RATE", _finite_decimal, policy_defaults.full_rate),
        half_rate=_read("BONUS_HALF_RATE", _finite_decimal, policy_defaults.half_rate),
    )

    return AnalyticsSettings(
        goal_policy=policy,
        slow_turnover_threshold=_read(
            "SLOW_TURNOVER_THRESHOLD", _finite_float, defaults.slow_turnover_threshold
        ),
        turnover_window_days=_read(
            "TURNOVER_WINDOW_DAYS", _positive_int, defaults.turnover_window_days
        ),
        stale_days=_read("STALE_DAYS", _positive_int, defaults.stale_days),
        promotion_baseline_days=_read(
            "PROMOTION_BASELINE_DAYS", _positive_int, defaults.promotion_baseline_days
        ),
        overdue_warning_days=_read(
            "OVERDUE_WARNING_DAYS", _positive_int, defaults.overdue_warning_days
        ),
        overdue_critical_days=_read(
            "OVERDUE_CRITICAL_DAYS", _positive_int, defaults.overdue_critical_days
        ),
        inventory_evolution_days=_read(
            "INVENTORY_EVOLUTION_DAYS", _positive_int, defaults.inventory_evolution_days
        ),
        stale_alert_tiers=_read("STALE_ALERT_TIERS", _tiers, defaults.stale_alert_tiers),
    )


__all__ = ["AnalyticsSettings", "ENV_PREFIX", "GoalPolicy", "load_settings"]
