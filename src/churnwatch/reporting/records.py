# src/churnwatch/reporting/records.py
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Sequence

from churnwatch.churn.scorer import ChurnPrediction
from churnwatch.churn.signals import Signal


@dataclass(frozen=True)
class NormalizedUserRecord:
    """
    One flat row per scored user for storage. No markers, no nesting;
    "never" days stay numeric (999).
    """
    url: Optional[str]
    domain: Optional[str]
    base_url: Optional[str]

    user_id: Any
    email: Optional[str]
    country: Optional[str]

    churn_risk_level: str
    churn_score: int
    player_status: str

    risk_factors: Optional[str]
    retention_actions: Optional[str]

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
    kyc_status: Optional[str]
    is_vip: bool

    analyzed_at: str
    analysis_id: str
    created_at: str

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        # storage column keeps the upstream spelling
        out["baseUrl"] = out.pop("base_url")
        return out


def join_clean(signals: Sequence[Signal]) -> Optional[str]:
    joined = "; ".join(s.text.strip() for s in signals if s.text.strip())
    return joined or None


def normalize_prediction(
    p: ChurnPrediction,
    *,
    analysis_id: str,
    analyzed_at: str,
    created_at: str,
    url: Optional[str] = None,
    domain: Optional[str] = None,
    base_url: Optional[str] = None,
) -> NormalizedUserRecord:
    return NormalizedUserRecord(
        url=url,
        domain=domain,
        base_url=base_url,
        user_id=p.user_id,
        email=p.email,
        country=p.country,
        churn_risk_level=p.risk_tier,
        churn_score=p.churn_score,
        player_status=p.player_status,
        risk_factors=join_clean(p.factors),
        retention_actions=join_clean(p.actions),
        days_since_last_game=float(p.days_since_last_game),
        days_since_last_deposit=float(p.days_since_last_deposit),
        games_last_7_days=p.games_last_7_days,
        games_last_30_days=p.games_last_30_days,
        total_games=p.total_games,
        total_deposits=p.total_deposits,
        total_deposit_amount=float(p.total_deposit_amount),
        total_wagered=float(p.total_wagered),
        total_bonuses=p.total_bonuses,
        bonus_cancel_rate=float(p.bonus_cancel_rate),
        bonus_completion_rate=float(p.bonus_completion_rate),
        account_age_days=p.account_age_days,
        kyc_status=p.kyc_status,
        is_vip=p.is_vip,
        analyzed_at=analyzed_at,
        analysis_id=analysis_id,
        created_at=created_at,
    )
