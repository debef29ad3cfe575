# src/churnwatch/storage/duckdb_store.py
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Mapping, Sequence

import duckdb
import pandas as pd

RUNS_TABLE = "churn_analysis_runs"
USERS_TABLE = "user_churn_predictions"

# column -> DuckDB type; order is the insert order
RUN_COLUMNS: Dict[str, str] = {
    "id": "VARCHAR",
    "created_at": "VARCHAR",
    "analyzed_date": "VARCHAR",
    "total_analyzed": "BIGINT",
    "total_predicted": "BIGINT",
    "high_risk_count": "BIGINT",
    "medium_risk_count": "BIGINT",
    "low_medium_risk_count": "BIGINT",
    "low_risk_count": "BIGINT",
    "churned_count": "BIGINT",
    "at_risk_count": "BIGINT",
    "dormant_count": "BIGINT",
    "active_count": "BIGINT",
    "urgent_action_count": "BIGINT",
    "high_value_risk_count": "BIGINT",
    "total_deposit_at_risk": "VARCHAR",
    "avg_churn_score": "VARCHAR",
    "avg_days_inactive": "VARCHAR",
    "urgent_reactivation_count": "BIGINT",
    "engagement_campaign_count": "BIGINT",
    "dormant_wakeup_count": "BIGINT",
    "vip_intervention_count": "BIGINT",
    "top_risk_factors": "VARCHAR",
    "data_source": "VARCHAR",
    "domain": "VARCHAR",
    "base_url": "VARCHAR",
}

USER_COLUMNS: Dict[str, str] = {
    "url": "VARCHAR",
    "domain": "VARCHAR",
    "baseUrl": "VARCHAR",
    "user_id": "VARCHAR",
    "email": "VARCHAR",
    "country": "VARCHAR",
    "churn_risk_level": "VARCHAR",
    "churn_score": "INTEGER",
    "player_status": "VARCHAR",
    "risk_factors": "VARCHAR",
    "retention_actions": "VARCHAR",
    "days_since_last_game": "DOUBLE",
    "days_since_last_deposit": "DOUBLE",
    "games_last_7_days": "BIGINT",
    "games_last_30_days": "BIGINT",
    "total_games": "BIGINT",
    "total_deposits": "BIGINT",
    "total_deposit_amount": "DOUBLE",
    "total_wagered": "DOUBLE",
    "total_bonuses": "BIGINT",
    "bonus_cancel_rate": "DOUBLE",
    "bonus_completion_rate": "DOUBLE",
    "account_age_days": "BIGINT",
    "kyc_status": "VARCHAR",
    "is_vip": "BOOLEAN",
    "analyzed_at": "VARCHAR",
    "analysis_id": "VARCHAR",
    "created_at": "VARCHAR",
}


def _create_table(con: duckdb.DuckDBPyConnection, table: str, columns: Mapping[str, str]) -> None:
    cols = ",\n            ".join(f'"{c}" {t}' for c, t in columns.items())
    con.execute(f"CREATE TABLE IF NOT EXISTS {table} (\n            {cols}\n        );")


def _insert_frame(
    con: duckdb.DuckDBPyConnection,
    table: str,
    columns: Mapping[str, str],
    df: pd.DataFrame,
) -> None:
    if df.empty:
        return
    df = df.reindex(columns=list(columns))
    view = f"{table}_incoming"
    con.register(view, df)
    try:
        select = ", ".join(f'CAST("{c}" AS {t})' for c, t in columns.items())
        con.execute(f"INSERT INTO {table} SELECT {select} FROM {view};")
    finally:
        con.unregister(view)


def persist_run(
    db_path: Path,
    run_record: Mapping[str, Any],
    user_records: Sequence[Mapping[str, Any]],
    *,
    threads: int = 4,
) -> None:
    """
    Append one run row and its user rows. Records are written as produced;
    no dedup, no upsert.
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    con = duckdb.connect(database=db_path.as_posix())
    try:
        con.execute(f"PRAGMA threads={threads};")
        _create_table(con, RUNS_TABLE, RUN_COLUMNS)
        _create_table(con, USERS_TABLE, USER_COLUMNS)

        users = pd.DataFrame(list(user_records))
        if not users.empty:
            users["user_id"] = users["user_id"].astype(str)

        con.execute("BEGIN TRANSACTION;")
        _insert_frame(con, RUNS_TABLE, RUN_COLUMNS, pd.DataFrame([dict(run_record)]))
        _insert_frame(con, USERS_TABLE, USER_COLUMNS, users)
        con.execute("COMMIT;")
    finally:
        con.close()


def load_table(db_path: Path, table: str) -> pd.DataFrame:
    con = duckdb.connect(database=db_path.as_posix(), read_only=True)
    try:
        return con.execute(f"SELECT * FROM {table}").df()
    finally:
        con.close()
