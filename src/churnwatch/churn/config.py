# src/churnwatch/churn/config.py
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ChurnThresholds:
    # Game activity (days since last game)
    activity_critical_days: float = 60
    activity_warning_days: float = 30
    activity_recent_days: float = 7
    activity_critical_points: int = 40
    activity_warning_points: int = 25
    activity_recent_points: int = 10

    # Recent engagement
    zero_games_7d_points: int = 15
    zero_games_30d_points: int = 20
    low_games_30d: int = 10
    low_games_min_total: int = 50
    low_games_points: int = 10

    # Deposit behavior
    free_player_min_games: int = 100
    free_player_points: int = 20
    deposit_inactive_days: float = 90
    deposit_inactive_points: int = 25
    deposit_declining_days: float = 45
    deposit_declining_points: int = 15

    # Bonus engagement (rates are percentages, 0-100)
    bonus_high_cancel_rate: float = 70
    bonus_high_cancel_min_bonuses: int = 5
    bonus_high_cancel_points: int = 15
    bonus_zero_completion_min_bonuses: int = 3
    bonus_zero_completion_points: int = 10

    # Account lifecycle
    new_account_days: int = 30
    new_account_max_games: int = 10
    new_account_points: int = 10

    # VIP intervention: deposit > amount AND score > min_score (strict)
    vip_deposit_amount: float = 500
    vip_min_score: int = 40

    # Risk tiers (score >= threshold)
    tier_high: int = 60
    tier_medium: int = 30
    tier_low_medium: int = 15

    max_score: int = 100


DEFAULT_THRESHOLDS = ChurnThresholds()
