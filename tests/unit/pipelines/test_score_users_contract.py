from __future__ import annotations

import json
from dataclasses import replace
from pathlib import Path

import pandas as pd
import pytest


def _cfg(payload_path: Path, **overrides):
    from churnwatch.pipelines.score_users import ScoreUsersConfig

    return replace(
        ScoreUsersConfig(),
        input_path=payload_path,
        domain="casino.example.com",
        base_url="https://api.example.com",
        threads=1,
        **overrides,
    )


def test_score_users_module_imports():
    import churnwatch.pipelines.score_users as p

    assert callable(p.main)
    assert callable(p.run)


def test_missing_input_raises(chdir_sandbox):
    from churnwatch.pipelines.score_users import run

    with pytest.raises(FileNotFoundError):
        run(_cfg(Path("data/raw/nope.json")))


def test_pipeline_writes_outputs(chdir_sandbox, write_payload):
    from churnwatch.pipelines.score_users import run
    from churnwatch.storage.duckdb_store import RUNS_TABLE, USERS_TABLE, load_table

    cfg = _cfg(write_payload)
    record = run(cfg)

    summary = json.loads(cfg.out_summary_path.read_text(encoding="utf-8"))
    assert summary["total_users_analyzed"] == 5
    assert summary["total_users_predicted"] == 4
    assert summary["domain"] == "casino.example.com"
    assert summary["baseUrl"] == "https://api.example.com"

    db_record = json.loads(cfg.out_database_record_path.read_text(encoding="utf-8"))
    assert db_record == record
    assert db_record["id"] == summary["analysis_id"]

    users = pd.read_parquet(cfg.out_predictions_path)
    assert users["user_id"].tolist() == ["105", "101", "102", "103"]
    assert users["churn_score"].tolist() == [100, 65, 60, 0]
    assert set(users["url"]) == {"https://api.example.com/v2/ml/churns?page=2"}
    assert set(users["analysis_id"]) == {summary["analysis_id"]}

    assert load_table(cfg.duckdb_path, RUNS_TABLE)["id"].tolist() == [summary["analysis_id"]]
    assert len(load_table(cfg.duckdb_path, USERS_TABLE)) == 4


def test_pipeline_skips_invalid_records(chdir_sandbox, sandbox, make_user):
    from churnwatch.pipelines.score_users import run

    path = sandbox / "payload.json"
    path.write_text(json.dumps({"data": [make_user(id=None), make_user(id=2)]}), encoding="utf-8")

    cfg = _cfg(path, persist_duckdb=False)
    record = run(cfg)
    assert record["total_analyzed"] == 2
    assert record["total_predicted"] == 1
    assert not cfg.duckdb_path.exists()


def test_pipeline_empty_payload(chdir_sandbox, sandbox):
    from churnwatch.pipelines.score_users import run

    path = sandbox / "payload.json"
    path.write_text(json.dumps([{"data": [], "meta": {}}]), encoding="utf-8")

    cfg = _cfg(path)
    record = run(cfg)
    assert record["total_predicted"] == 0
    assert record["avg_churn_score"] == "0.00"
    assert pd.read_parquet(cfg.out_predictions_path).empty


def test_main_cli(chdir_sandbox, write_payload, capsys):
    from churnwatch.pipelines.score_users import main

    main(["--input", str(write_payload), "--domain", "d", "--no-duckdb"])
    out = capsys.readouterr().out
    assert "=== Churn risk scoring ===" in out
    assert Path("reports/churn_summary.json").exists()
    assert not Path("outputs/churn/churn.duckdb").exists()


def test_pipeline_counts_raw_records(chdir_sandbox, sandbox, make_user):
    from churnwatch.pipelines.score_users import run

    path = sandbox / "payload.json"
    path.write_text(json.dumps({"data": [make_user(id=1), "junk", None]}), encoding="utf-8")

    record = run(_cfg(path, persist_duckdb=False))
    assert record["total_analyzed"] == 3
    assert record["total_predicted"] == 1


def test_pipeline_writes_predictions_and_run_bundle(chdir_sandbox, write_payload):
    from churnwatch.pipelines.score_users import run

    cfg = _cfg(write_payload, persist_duckdb=False)
    record = run(cfg)

    predictions = json.loads(cfg.out_user_predictions_path.read_text(encoding="utf-8"))
    assert [p["user_id"] for p in predictions] == [105, 101, 102, 103]
    assert predictions[0]["churn_risk"] == "🔴 High"
    assert predictions[0]["churn_probability"] == "100%"
    assert predictions[-1]["risk_factors"] == ["✅ Active and engaged"]

    bundle = json.loads(cfg.out_run_path.read_text(encoding="utf-8"))
    assert bundle["database_record"] == record
    assert bundle["total_user_records"] == 4
    assert bundle["url"] == "https://api.example.com/v2/ml/churns?page=2"
    assert bundle["baseUrl"] == "https://api.example.com"
    assert [u["user_id"] for u in bundle["user_churn_predictions"]] == [105, 101, 102, 103]
