# src/churnwatch/reporting/metrics_summary.py
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping

import pandas as pd

from churnwatch.common.io import read_json


# ============================================================
# Churn run summary table
# - Reads the summary written by the score_users pipeline
# - Never crashes if the file is missing
# ============================================================

@dataclass(frozen=True)
class Paths:
    churn_summary: Path = Path("reports/churn_summary.json")


_SECTIONS = (
    ("Run", ("analysis_id", "analyzed_at", "total_users_analyzed", "total_users_predicted")),
    ("Risk tiers", ("high_risk_users", "medium_risk_users", "low_medium_risk_users", "low_risk_users")),
    ("Player status", ("churned_users", "at_risk_users", "dormant_users", "active_users")),
    (
        "Alerts",
        (
            "immediate_action_required",
            "users_inactive_60plus_days",
            "users_no_deposit_90plus_days",
            "high_value_at_risk",
            "total_deposit_at_risk",
        ),
    ),
    (
        "Campaigns",
        (
            "urgent_reactivation_count",
            "engagement_campaign_count",
            "dormant_wakeup_count",
            "vip_intervention_count",
        ),
    ),
    ("Averages", ("avg_churn_score", "avg_days_inactive")),
)


def _read_summary(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    data = read_json(path)
    return data if isinstance(data, dict) else {}


def build_summary_table(summary: Mapping[str, Any]) -> pd.DataFrame:
    rows: list[tuple[str, str, Any]] = []
    for section, keys in _SECTIONS:
        for k in keys:
            if k in summary:
                rows.append((section, k, summary[k]))

    # one row per top factor reads better than the joined string
    top = summary.get("top_risk_factors") or ""
    for i, item in enumerate(s for s in top.split("; ") if s):
        rows.append(("Top risk factors", f"#{i + 1}", item))

    df = pd.DataFrame(rows, columns=["Section", "Metric", "Value"])
    df["Value"] = df["Value"].apply(lambda x: "" if x is None else x)
    return df


def main(paths: Paths = Paths()) -> None:
    summary = _read_summary(paths.churn_summary)
    if not summary:
        print(f"No churn summary at {paths.churn_summary}", flush=True)
        return
    print(build_summary_table(summary).to_string(index=False), flush=True)


if __name__ == "__main__":
    main()
