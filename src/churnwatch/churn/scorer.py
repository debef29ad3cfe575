# src/churnwatch/churn/scorer.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from churnwatch.churn.config import DEFAULT_THRESHOLDS, ChurnThresholds
from churnwatch.churn.rules import RULE_GROUPS, RuleHit, UserMetrics, evaluate_rules, parse_metrics
from churnwatch.churn.signals import (
    STATUS_ACTIONS,
    PlayerStatus,
    RiskTier,
    Signal,
    action,
    factor,
    tier_display,
)
from churnwatch.data.schemas import NEVER, NEVER_LABEL, SCHEMA
from churnwatch.data.validation import (
    InvalidInputError,
    account_age_days,
    display_name,
    parse_flag,
    require_user_id,
)


def _log(msg: str) -> None:
    print(msg, flush=True)


def days_label(days: float) -> str:
    return NEVER_LABEL if days == NEVER else f"{days:.0f}"


def risk_tier(score: int, thresholds: ChurnThresholds = DEFAULT_THRESHOLDS) -> RiskTier:
    if score >= thresholds.tier_high:
        return "High"
    if score >= thresholds.tier_medium:
        return "Medium"
    if score >= thresholds.tier_low_medium:
        return "Low-Medium"
    return "Low"


@dataclass(frozen=True)
class ChurnPrediction:
    user_id: Any
    email: Optional[str]
    name: Optional[str]
    country: Optional[str]
    created_at: Optional[str]
    kyc_status: Optional[str]
    is_vip: bool
    account_age_days: int

    churn_score: int
    risk_tier: RiskTier
    player_status: PlayerStatus
    factors: Tuple[Signal, ...]
    actions: Tuple[Signal, ...]

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

    @property
    def risk_factors(self) -> Tuple[str, ...]:
        return tuple(f.display for f in self.factors)

    @property
    def retention_actions(self) -> Tuple[str, ...]:
        return tuple(a.display for a in self.actions)

    def to_dict(self) -> Dict[str, Any]:
        """Display form for the per-user predictions report (markers, "Never", formatted amounts)."""
        return {
            "user_id": self.user_id,
            "email": self.email,
            "name": self.name,
            "country": self.country,
            "created_at": self.created_at,
            "account_age_days": self.account_age_days,
            "churn_risk": tier_display(self.risk_tier),
            "churn_score": self.churn_score,
            "churn_probability": f"{self.churn_score}%",
            "player_status": self.player_status,
            "risk_factors": list(self.risk_factors),
            "retention_actions": list(self.retention_actions),
            "days_since_last_game": days_label(self.days_since_last_game),
            "days_since_last_deposit": days_label(self.days_since_last_deposit),
            "games_last_7_days": self.games_last_7_days,
            "games_last_30_days": self.games_last_30_days,
            "total_games": self.total_games,
            "total_deposits": self.total_deposits,
            "total_deposit_amount": f"{self.total_deposit_amount:.2f}",
            "total_wagered": f"{self.total_wagered:.2f}",
            "total_bonuses": self.total_bonuses,
            "bonus_cancel_rate": f"{self.bonus_cancel_rate:.1f}%",
            "bonus_completion_rate": f"{self.bonus_completion_rate:.1f}%",
            "kyc_status": self.kyc_status,
            "is_vip": "Yes" if self.is_vip else "No",
        }


# ============================================================
# Fold
# ============================================================
def _fold(
    hits: List[RuleHit],
    metrics: UserMetrics,
    thresholds: ChurnThresholds,
) -> Tuple[int, PlayerStatus, Tuple[Signal, ...], Tuple[Signal, ...]]:
    raw = sum(h.points for h in hits)
    score = int(min(max(raw, 0), thresholds.max_score))

    status: PlayerStatus = "Active"
    for h in hits:
        if h.status is not None:
            status = h.status

    factors = tuple(h.factor for h in hits)
    actions = [h.action for h in hits if h.action is not None]

    actions.extend(action(code) for code in STATUS_ACTIONS.get(status, ()))
    if metrics.total_deposit_amount > thresholds.vip_deposit_amount and score > thresholds.vip_min_score:
        actions.append(action("vip_intervention"))

    if not factors:
        factors = (factor("active_engaged"),)
        status = "Active"

    return score, status, factors, tuple(actions)


# ============================================================
# Entry points
# ============================================================
def score(
    user: Mapping[str, Any],
    now: datetime,
    thresholds: ChurnThresholds = DEFAULT_THRESHOLDS,
) -> Optional[ChurnPrediction]:
    """
    Score one raw user record.

    Returns None when the record carries no signal (no games, deposits or
    bonuses). Raises InvalidInputError when the user id is missing.
    Pure apart from `now`, which only feeds account_age_days.
    """
    uid = require_user_id(user)
    age = account_age_days(user.get(SCHEMA.CREATED_AT), now)
    metrics = parse_metrics(user, age)
    if not metrics.has_signal:
        return None

    hits = evaluate_rules(metrics, thresholds, RULE_GROUPS)
    churn_score, status, factors, actions = _fold(hits, metrics, thresholds)

    return ChurnPrediction(
        user_id=uid,
        email=user.get(SCHEMA.EMAIL),
        name=display_name(user),
        country=user.get(SCHEMA.COUNTRY),
        created_at=user.get(SCHEMA.CREATED_AT),
        kyc_status=user.get(SCHEMA.KYC_STATUS),
        is_vip=parse_flag(user.get(SCHEMA.IS_VIP)),
        account_age_days=age,
        churn_score=churn_score,
        risk_tier=risk_tier(churn_score, thresholds),
        player_status=status,
        factors=factors,
        actions=actions,
        days_since_last_game=metrics.days_since_last_game,
        days_since_last_deposit=metrics.days_since_last_deposit,
        games_last_7_days=metrics.games_last_7_days,
        games_last_30_days=metrics.games_last_30_days,
        total_games=metrics.total_games,
        total_deposits=metrics.total_deposits,
        total_deposit_amount=metrics.total_deposit_amount,
        total_wagered=metrics.total_wagered,
        total_bonuses=metrics.total_bonuses,
        bonus_cancel_rate=metrics.bonus_cancel_rate,
        bonus_completion_rate=metrics.bonus_completion_rate,
    )


def sort_by_risk(predictions: Iterable[ChurnPrediction]) -> List[ChurnPrediction]:
    # sorted() is stable: equal scores keep input order
    return sorted(predictions, key=lambda p: p.churn_score, reverse=True)


def score_users(
    users: Iterable[Mapping[str, Any]],
    now: datetime,
    thresholds: ChurnThresholds = DEFAULT_THRESHOLDS,
    *,
    skip_invalid: bool = False,
) -> List[ChurnPrediction]:
    """
    Score a batch, drop no-signal users, and return highest risk first.
    With skip_invalid=True, records without a user id are skipped instead of raising.
    """
    out: List[ChurnPrediction] = []
    for i, user in enumerate(users):
        try:
            pred = score(user, now, thresholds)
        except InvalidInputError as e:
            if not skip_invalid:
                raise
            _log(f"[WARN] skipping record #{i}: {e}")
            continue
        if pred is not None:
            out.append(pred)
    return sort_by_risk(out)
