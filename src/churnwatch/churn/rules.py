# src/churnwatch/churn/rules.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, List, Mapping, Optional, Tuple

from churnwatch.churn.config import ChurnThresholds
from churnwatch.churn.signals import PlayerStatus, Signal, action, factor
from churnwatch.data.schemas import SCHEMA
from churnwatch.data.validation import parse_count, parse_days, parse_number


# ============================================================
# Parsed metrics
# ============================================================
@dataclass(frozen=True)
class UserMetrics:
    days_since_last_game: float
    days_since_last_deposit: float
    games_last_7_days: int
    games_last_30_days: int
    total_games: int
    total_deposits: int
    total_deposit_amount: float
    total_wagered: float
    total_bonuses: int
    bonus_cancel_rate: float
    bonus_completion_rate: float
    account_age_days: int

    @property
    def has_signal(self) -> bool:
        return self.total_games > 0 or self.total_deposits > 0 or self.total_bonuses > 0


def parse_metrics(user: Mapping[str, Any], account_age_days: int) -> UserMetrics:
    return UserMetrics(
        days_since_last_game=parse_days(user.get(SCHEMA.DAYS_SINCE_LAST_GAME)),
        days_since_last_deposit=parse_days(user.get(SCHEMA.DAYS_SINCE_LAST_DEPOSIT)),
        games_last_7_days=parse_count(user.get(SCHEMA.GAMES_LAST_7_DAYS)),
        games_last_30_days=parse_count(user.get(SCHEMA.GAMES_LAST_30_DAYS)),
        total_games=parse_count(user.get(SCHEMA.TOTAL_GAMES)),
        total_deposits=parse_count(user.get(SCHEMA.TOTAL_DEPOSITS)),
        total_deposit_amount=parse_number(user.get(SCHEMA.TOTAL_DEPOSIT_AMOUNT), 0.0),
        total_wagered=parse_number(user.get(SCHEMA.TOTAL_WAGERED), 0.0),
        total_bonuses=parse_count(user.get(SCHEMA.TOTAL_BONUSES)),
        bonus_cancel_rate=parse_number(user.get(SCHEMA.BONUS_CANCEL_RATE), 0.0),
        bonus_completion_rate=parse_number(user.get(SCHEMA.BONUS_COMPLETION_RATE), 0.0),
        account_age_days=account_age_days,
    )


# ============================================================
# Rules
# ============================================================
@dataclass(frozen=True)
class RuleHit:
    points: int
    factor: Signal
    status: Optional[PlayerStatus] = None
    action: Optional[Signal] = None


Rule = Callable[[UserMetrics, ChurnThresholds], Optional[RuleHit]]


@dataclass(frozen=True)
class RuleGroup:
    name: str
    rules: Tuple[Rule, ...]
    exclusive: bool = True  # first matching rule wins


def _activity_critical(m: UserMetrics, t: ChurnThresholds) -> Optional[RuleHit]:
    if m.days_since_last_game >= t.activity_critical_days:
        return RuleHit(
            t.activity_critical_points,
            factor("inactive_critical", days=m.days_since_last_game),
            status="Churned",
        )
    return None


def _activity_warning(m: UserMetrics, t: ChurnThresholds) -> Optional[RuleHit]:
    if m.days_since_last_game >= t.activity_warning_days:
        return RuleHit(
            t.activity_warning_points,
            factor("inactive_warning", days=m.days_since_last_game),
            status="At Risk",
        )
    return None


def _activity_recent(m: UserMetrics, t: ChurnThresholds) -> Optional[RuleHit]:
    if m.days_since_last_game >= t.activity_recent_days:
        return RuleHit(t.activity_recent_points, factor("inactive_recent", days=m.days_since_last_game))
    return None


def _zero_games_7d(m: UserMetrics, t: ChurnThresholds) -> Optional[RuleHit]:
    if m.games_last_7_days == 0 and m.total_games > 0:
        return RuleHit(t.zero_games_7d_points, factor("zero_games_7d"))
    return None


def _zero_games_30d(m: UserMetrics, t: ChurnThresholds) -> Optional[RuleHit]:
    if m.games_last_30_days == 0 and m.total_games > 0:
        return RuleHit(t.zero_games_30d_points, factor("zero_games_30d"), status="Dormant")
    return None


def _low_games_30d(m: UserMetrics, t: ChurnThresholds) -> Optional[RuleHit]:
    if m.games_last_30_days < t.low_games_30d and m.total_games > t.low_games_min_total:
        return RuleHit(t.low_games_points, factor("low_games_30d", games=m.games_last_30_days))
    return None


def _free_player(m: UserMetrics, t: ChurnThresholds) -> Optional[RuleHit]:
    if m.total_deposits == 0 and m.total_games > t.free_player_min_games:
        return RuleHit(
            t.free_player_points,
            factor("never_deposited"),
            action=action("first_deposit_bonus"),
        )
    return None


def _deposit_inactive(m: UserMetrics, t: ChurnThresholds) -> Optional[RuleHit]:
    if m.days_since_last_deposit >= t.deposit_inactive_days:
        return RuleHit(
            t.deposit_inactive_points,
            factor("deposit_inactive", days=m.days_since_last_deposit),
            action=action("reload_bonus"),
        )
    return None


def _deposit_declining(m: UserMetrics, t: ChurnThresholds) -> Optional[RuleHit]:
    if m.days_since_last_deposit >= t.deposit_declining_days:
        return RuleHit(
            t.deposit_declining_points,
            factor("deposit_declining", days=m.days_since_last_deposit),
            action=action("win_back_offer"),
        )
    return None


def _high_bonus_cancel(m: UserMetrics, t: ChurnThresholds) -> Optional[RuleHit]:
    if m.bonus_cancel_rate >= t.bonus_high_cancel_rate and m.total_bonuses > t.bonus_high_cancel_min_bonuses:
        return RuleHit(
            t.bonus_high_cancel_points,
            factor("high_bonus_cancel", rate=m.bonus_cancel_rate),
            action=action("no_wagering_cashback"),
        )
    return None


def _zero_bonus_completion(m: UserMetrics, t: ChurnThresholds) -> Optional[RuleHit]:
    if m.bonus_completion_rate == 0 and m.total_bonuses > t.bonus_zero_completion_min_bonuses:
        return RuleHit(t.bonus_zero_completion_points, factor("zero_bonus_completion"))
    return None


def _new_low_engagement(m: UserMetrics, t: ChurnThresholds) -> Optional[RuleHit]:
    if m.account_age_days < t.new_account_days and m.total_games < t.new_account_max_games:
        return RuleHit(
            t.new_account_points,
            factor("new_low_engagement"),
            action=action("welcome_campaign"),
        )
    return None


# Evaluation order matters: status overrides are last-write-wins.
RULE_GROUPS: Tuple[RuleGroup, ...] = (
    RuleGroup("activity", (_activity_critical, _activity_warning, _activity_recent)),
    RuleGroup("recent_7d", (_zero_games_7d,)),
    RuleGroup("recent_30d", (_zero_games_30d, _low_games_30d)),
    RuleGroup("deposit", (_free_player, _deposit_inactive, _deposit_declining)),
    RuleGroup("bonus", (_high_bonus_cancel, _zero_bonus_completion), exclusive=False),
    RuleGroup("lifecycle", (_new_low_engagement,)),
)


def evaluate_rules(
    metrics: UserMetrics,
    thresholds: ChurnThresholds,
    groups: Tuple[RuleGroup, ...] = RULE_GROUPS,
) -> List[RuleHit]:
    """Ordered log of every rule that fired."""
    hits: List[RuleHit] = []
    for group in groups:
        for rule in group.rules:
            hit = rule(metrics, thresholds)
            if hit is None:
                continue
            hits.append(hit)
            if group.exclusive:
                break
    return hits
