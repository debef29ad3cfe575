# src/churnwatch/pipelines/score_users.py
from __future__ import annotations

import argparse
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional, Sequence

import pandas as pd

from churnwatch.churn.config import ChurnThresholds
from churnwatch.churn.scorer import score_users
from churnwatch.common.io import read_json, write_json
from churnwatch.common.time import utc_now
from churnwatch.data.ingestion import extract_users, next_page_url, record_count
from churnwatch.reporting.metrics_summary import build_summary_table
from churnwatch.reporting.summary import RunContext, SummaryThresholds, database_record, run_payload, summarize
from churnwatch.storage.duckdb_store import USER_COLUMNS, persist_run


# ============================================================
# Config
# ============================================================
@dataclass(frozen=True)
class ScoreUsersConfig:
    input_path: Path = Path("data/raw/churn_users.json")

    out_dir: Path = Path("outputs/churn")
    out_predictions_path: Path = Path("outputs/churn/user_churn_predictions.parquet")
    out_summary_path: Path = Path("reports/churn_summary.json")
    out_database_record_path: Path = Path("reports/churn_database_record.json")
    out_user_predictions_path: Path = Path("reports/churn_user_predictions.json")
    out_run_path: Path = Path("reports/churn_run.json")

    # DuckDB sink
    persist_duckdb: bool = True
    duckdb_path: Path = Path("outputs/churn/churn.duckdb")
    threads: int = 4

    # run metadata
    domain: Optional[str] = None
    base_url: Optional[str] = None
    data_source: str = "API /v2/ml/churns"

    skip_invalid: bool = True
    thresholds: ChurnThresholds = ChurnThresholds()
    summary_thresholds: SummaryThresholds = SummaryThresholds()


def _log(msg: str) -> None:
    print(msg, flush=True)


# ============================================================
# Pipeline entry
# ============================================================
def run(cfg: ScoreUsersConfig) -> dict:
    if not cfg.input_path.exists():
        raise FileNotFoundError(f"Missing {cfg.input_path}. Export the churn API payload first.")

    cfg.out_dir.mkdir(parents=True, exist_ok=True)
    cfg.out_summary_path.parent.mkdir(parents=True, exist_ok=True)

    _log("=== Churn risk scoring ===")
    _log(f"[1/4] Loading payload: {cfg.input_path}")
    payload = read_json(cfg.input_path)
    users = extract_users(payload)
    total_examined = record_count(payload)
    ctx = RunContext(
        url=next_page_url(payload),
        domain=cfg.domain,
        base_url=cfg.base_url,
        data_source=cfg.data_source,
        now=utc_now(),
    )

    _log(f"[2/4] Scoring {len(users)} users ({total_examined} records received)")
    predictions = score_users(users, ctx.now, cfg.thresholds, skip_invalid=cfg.skip_invalid)
    _log(f"      predicted={len(predictions)} skipped_no_signal_or_invalid={total_examined - len(predictions)}")

    _log("[3/4] Summarizing batch")
    summary, records = summarize(predictions, total_examined, ctx, cfg.summary_thresholds)
    db_record = database_record(summary)
    user_rows = [r.to_dict() for r in records]

    _log("[4/4] Writing outputs")
    write_json(cfg.out_summary_path, summary.to_dict())
    write_json(cfg.out_database_record_path, db_record)
    write_json(cfg.out_user_predictions_path, [p.to_dict() for p in predictions])
    write_json(cfg.out_run_path, run_payload(summary, records, ctx))
    frame = pd.DataFrame(user_rows, columns=list(USER_COLUMNS))
    frame["user_id"] = frame["user_id"].astype(str)
    frame.to_parquet(cfg.out_predictions_path, index=False)

    if cfg.persist_duckdb:
        persist_run(cfg.duckdb_path, db_record, user_rows, threads=cfg.threads)
        _log(f"✅ DuckDB: {cfg.duckdb_path}")

    _log(f"✅ Wrote: {cfg.out_predictions_path}")
    _log(f"✅ Summary: {cfg.out_summary_path}")
    _log(f"✅ Run bundle: {cfg.out_run_path}")
    _log(build_summary_table(summary.to_dict()).to_string(index=False))

    return db_record


def main(argv: Optional[Sequence[str]] = None) -> None:
    ap = argparse.ArgumentParser(description="Score churn risk for an exported user payload.")
    ap.add_argument("--input", type=Path, default=ScoreUsersConfig.input_path)
    ap.add_argument("--domain", default=None)
    ap.add_argument("--base-url", default=None)
    ap.add_argument("--no-duckdb", action="store_true")
    args = ap.parse_args(argv)

    cfg = replace(
        ScoreUsersConfig(),
        input_path=args.input,
        domain=args.domain,
        base_url=args.base_url,
        persist_duckdb=not args.no_duckdb,
    )
    run(cfg)


if __name__ == "__main__":
    main()
