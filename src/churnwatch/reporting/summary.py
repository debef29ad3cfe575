# src/churnwatch/reporting/summary.py
from __future__ import annotations

import secrets
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pandas as pd

from churnwatch.churn.scorer import ChurnPrediction
from churnwatch.churn.signals import PLAYER_STATUSES, RISK_TIERS
from churnwatch.common.time import as_utc, epoch_millis, utc_now
from churnwatch.data.schemas import NEVER
from churnwatch.reporting.records import NormalizedUserRecord, normalize_prediction

NOT_AVAILABLE = "N/A"


# ============================================================
# Config
# ============================================================
@dataclass(frozen=True)
class SummaryThresholds:
    immediate_action_score: int = 70
    inactive_days: float = 60
    no_deposit_days: float = 90

    # high_value_at_risk: deposit > amount AND score >= min_score
    high_value_deposit: float = 500
    high_value_min_score: int = 40
    # vip_intervention_count: deposit > amount AND score > min_score (strict)
    vip_deposit: float = 500
    vip_min_score: int = 40

    deposit_at_risk_score: int = 60
    top_n_factors: int = 5


@dataclass(frozen=True)
class RunContext:
    url: Optional[str] = None
    domain: Optional[str] = None
    base_url: Optional[str] = None
    data_source: str = "API /v2/ml/churns"

    # fixed values for reproducible runs; generated when None
    analysis_id: Optional[str] = None
    now: Optional[datetime] = None


@dataclass(frozen=True)
class BatchSummary:
    analysis_id: str
    analysis_date: str
    analyzed_at: str

    total_users_analyzed: int
    total_users_predicted: int

    high_risk_users: int
    medium_risk_users: int
    low_medium_risk_users: int
    low_risk_users: int

    churned_users: int
    at_risk_users: int
    dormant_users: int
    active_users: int

    immediate_action_required: int
    users_inactive_60plus_days: int
    users_no_deposit_90plus_days: int
    high_value_at_risk: int
    total_deposit_at_risk: str

    urgent_reactivation_count: int
    engagement_campaign_count: int
    dormant_wakeup_count: int
    vip_intervention_count: int

    avg_churn_score: str
    avg_days_inactive: str
    top_risk_factors: str

    data_source: str
    domain: str
    base_url: str

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        out["baseUrl"] = out.pop("base_url")
        return out


# ============================================================
# Helpers
# ============================================================
def new_analysis_id(now: datetime) -> str:
    return f"CHURN_{epoch_millis(now)}_{secrets.token_hex(3)}"


def iso_timestamp(now: datetime) -> str:
    return as_utc(now).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _frame(predictions: Sequence[ChurnPrediction]) -> pd.DataFrame:
    return pd.DataFrame(
        {
            "churn_score": pd.Series([p.churn_score for p in predictions], dtype="int64"),
            "risk_tier": pd.Series([p.risk_tier for p in predictions], dtype="object"),
            "player_status": pd.Series([p.player_status for p in predictions], dtype="object"),
            "days_since_last_game": pd.Series([p.days_since_last_game for p in predictions], dtype="float64"),
            "days_since_last_deposit": pd.Series([p.days_since_last_deposit for p in predictions], dtype="float64"),
            "total_deposit_amount": pd.Series([p.total_deposit_amount for p in predictions], dtype="float64"),
        }
    )


def _count_at_least(days: pd.Series, threshold: float) -> int:
    # NEVER is "no data", not "inactive for 999 days"
    return int(((days >= threshold) & (days != NEVER)).sum())


def _fmt2(x: float) -> str:
    return f"{x:.2f}"


def top_risk_factors(predictions: Sequence[ChurnPrediction], top_n: int = 5) -> str:
    """Most common factors as "text (N users)"; ties keep first-seen order."""
    texts = pd.Series([f.text.strip() for p in predictions for f in p.factors], dtype="object")
    texts = texts[texts != ""]
    if texts.empty:
        return ""
    counts = texts.groupby(texts, sort=False).size()
    counts = counts.sort_values(ascending=False, kind="stable").head(top_n)
    return "; ".join(f"{factor} ({int(n)} users)" for factor, n in counts.items())


# ============================================================
# Aggregation
# ============================================================
def summarize(
    predictions: Sequence[ChurnPrediction],
    total_examined: int,
    ctx: RunContext = RunContext(),
    thresholds: SummaryThresholds = SummaryThresholds(),
) -> Tuple[BatchSummary, List[NormalizedUserRecord]]:
    """
    Reduce a complete, already-scored batch into one summary row plus one
    storage record per prediction. Scores are read, never recomputed.
    """
    now = ctx.now or utc_now()
    analysis_id = ctx.analysis_id or new_analysis_id(now)
    analysis_date = iso_timestamp(now)
    analyzed_at = as_utc(now).date().isoformat()

    df = _frame(predictions)
    n = len(df)
    score = df["churn_score"]
    deposit = df["total_deposit_amount"]

    tiers = df["risk_tier"].value_counts().reindex(RISK_TIERS, fill_value=0)
    statuses = df["player_status"].value_counts().reindex(PLAYER_STATUSES, fill_value=0)

    high_value = (deposit > thresholds.high_value_deposit) & (score >= thresholds.high_value_min_score)
    vip = (deposit > thresholds.vip_deposit) & (score > thresholds.vip_min_score)
    at_risk_deposit = float(deposit[score >= thresholds.deposit_at_risk_score].sum())

    if n > 0:
        avg_score = _fmt2(float(score.mean()))
        days = df["days_since_last_game"]
        # sentinels add 0 to the sum but still count in the denominator
        avg_days = _fmt2(float(days.where(days != NEVER, 0.0).sum()) / n)
    else:
        avg_score = avg_days = "0.00"

    summary = BatchSummary(
        analysis_id=analysis_id,
        analysis_date=analysis_date,
        analyzed_at=analyzed_at,
        total_users_analyzed=int(total_examined),
        total_users_predicted=n,
        high_risk_users=int(tiers["High"]),
        medium_risk_users=int(tiers["Medium"]),
        low_medium_risk_users=int(tiers["Low-Medium"]),
        low_risk_users=int(tiers["Low"]),
        churned_users=int(statuses["Churned"]),
        at_risk_users=int(statuses["At Risk"]),
        dormant_users=int(statuses["Dormant"]),
        active_users=int(statuses["Active"]),
        immediate_action_required=int((score >= thresholds.immediate_action_score).sum()),
        users_inactive_60plus_days=_count_at_least(df["days_since_last_game"], thresholds.inactive_days),
        users_no_deposit_90plus_days=_count_at_least(df["days_since_last_deposit"], thresholds.no_deposit_days),
        high_value_at_risk=int(high_value.sum()),
        total_deposit_at_risk=_fmt2(at_risk_deposit),
        urgent_reactivation_count=int(statuses["Churned"]),
        engagement_campaign_count=int(statuses["At Risk"]),
        dormant_wakeup_count=int(statuses["Dormant"]),
        vip_intervention_count=int(vip.sum()),
        avg_churn_score=avg_score,
        avg_days_inactive=avg_days,
        top_risk_factors=top_risk_factors(predictions, thresholds.top_n_factors),
        data_source=ctx.data_source,
        domain=ctx.domain or NOT_AVAILABLE,
        base_url=ctx.base_url or NOT_AVAILABLE,
    )

    records = [
        normalize_prediction(
            p,
            analysis_id=analysis_id,
            analyzed_at=analyzed_at,
            created_at=analysis_date,
            url=ctx.url,
            domain=ctx.domain,
            base_url=ctx.base_url,
        )
        for p in predictions
    ]
    return summary, records


# ============================================================
# Storage shapes
# ============================================================
def database_record(summary: BatchSummary) -> Dict[str, Any]:
    """Flat row for the run table (storage column names)."""
    return {
        "id": summary.analysis_id,
        "created_at": summary.analysis_date,
        "analyzed_date": summary.analyzed_at,
        "total_analyzed": summary.total_users_analyzed,
        "total_predicted": summary.total_users_predicted,
        "high_risk_count": summary.high_risk_users,
        "medium_risk_count": summary.medium_risk_users,
        "low_medium_risk_count": summary.low_medium_risk_users,
        "low_risk_count": summary.low_risk_users,
        "churned_count": summary.churned_users,
        "at_risk_count": summary.at_risk_users,
        "dormant_count": summary.dormant_users,
        "active_count": summary.active_users,
        "urgent_action_count": summary.immediate_action_required,
        "high_value_risk_count": summary.high_value_at_risk,
        "total_deposit_at_risk": summary.total_deposit_at_risk,
        "avg_churn_score": summary.avg_churn_score,
        "avg_days_inactive": summary.avg_days_inactive,
        "urgent_reactivation_count": summary.urgent_reactivation_count,
        "engagement_campaign_count": summary.engagement_campaign_count,
        "dormant_wakeup_count": summary.dormant_wakeup_count,
        "vip_intervention_count": summary.vip_intervention_count,
        "top_risk_factors": summary.top_risk_factors,
        "data_source": summary.data_source,
        "domain": summary.domain,
        "base_url": summary.base_url,
    }


def run_payload(
    summary: BatchSummary,
    records: Sequence[NormalizedUserRecord],
    ctx: RunContext = RunContext(),
) -> Dict[str, Any]:
    return {
        "summary": summary.to_dict(),
        "database_record": database_record(summary),
        "user_churn_predictions": [r.to_dict() for r in records],
        "total_user_records": len(records),
        "url": ctx.url,
        "domain": ctx.domain,
        "baseUrl": ctx.base_url,
    }
