from __future__ import annotations

from dataclasses import replace

import pytest


@pytest.fixture()
def ctx(now):
    from churnwatch.reporting.summary import RunContext

    return RunContext(
        url="https://api.example.com/v2/ml/churns?page=2",
        domain="casino.example.com",
        base_url="https://api.example.com",
        analysis_id="CHURN_TEST",
        now=now,
    )


@pytest.fixture()
def predictions(sample_users, now):
    from churnwatch.churn.scorer import score_users

    return score_users(sample_users, now)


def test_summary_counts(predictions, ctx):
    from churnwatch.reporting.summary import summarize

    s, _ = summarize(predictions, 5, ctx)

    assert s.total_users_analyzed == 5
    assert s.total_users_predicted == 4

    assert (s.high_risk_users, s.medium_risk_users, s.low_medium_risk_users, s.low_risk_users) == (3, 0, 0, 1)
    assert (s.churned_users, s.at_risk_users, s.dormant_users, s.active_users) == (1, 0, 2, 1)

    assert s.immediate_action_required == 1
    assert s.users_inactive_60plus_days == 2
    assert s.users_no_deposit_90plus_days == 1
    assert s.high_value_at_risk == 1
    assert s.total_deposit_at_risk == "2000.00"

    assert s.urgent_reactivation_count == 1
    assert s.engagement_campaign_count == 0
    assert s.dormant_wakeup_count == 2
    assert s.vip_intervention_count == 1

    assert s.avg_churn_score == "56.25"
    assert s.avg_days_inactive == "50.25"


def test_tier_and_status_partitions_are_exhaustive(predictions, ctx):
    from churnwatch.reporting.summary import summarize

    s, _ = summarize(predictions, 5, ctx)
    n = s.total_users_predicted
    assert s.high_risk_users + s.medium_risk_users + s.low_medium_risk_users + s.low_risk_users == n
    assert s.churned_users + s.at_risk_users + s.dormant_users + s.active_users == n


def test_top_risk_factors(predictions, ctx):
    from churnwatch.reporting.summary import summarize

    s, _ = summarize(predictions, 5, ctx)
    assert s.top_risk_factors == "; ".join(
        [
            "Zero games in last 7 days (3 users)",
            "Zero games in last 30 days (2 users)",
            "No game activity for 90 days (1 users)",
            "120 days since last deposit (1 users)",
            "No game activity for 75 days (1 users)",
        ]
    )


def test_top_factor_shared_by_three_of_five(make_user, now, ctx):
    from churnwatch.churn.scorer import score_users
    from churnwatch.reporting.summary import top_risk_factors

    users = [
        make_user(id=1, days_since_last_game=8, games_last_7_days=0),
        make_user(id=2, days_since_last_game=12, games_last_7_days=0),
        make_user(id=3, days_since_last_game=20, games_last_7_days=0),
        make_user(id=4, days_since_last_deposit=50),
        make_user(id=5, days_since_last_deposit=100),
    ]
    out = top_risk_factors(score_users(users, now))
    assert out.split("; ")[0] == "Zero games in last 7 days (3 users)"
    assert "🔴" not in out and "🟡" not in out


def test_sentinel_not_counted_as_inactive(make_user, now, ctx):
    from churnwatch.churn.scorer import score_users
    from churnwatch.reporting.summary import summarize

    users = [
        make_user(id=1, days_since_last_game="Never", days_since_last_deposit="Never"),
        make_user(id=2, days_since_last_game=999, days_since_last_deposit=999),
    ]
    s, _ = summarize(score_users(users, now), 2, ctx)
    assert s.users_inactive_60plus_days == 0
    assert s.users_no_deposit_90plus_days == 0
    # sentinels add nothing but still count in the denominator
    assert s.avg_days_inactive == "0.00"


def test_avg_days_inactive_divides_by_all_predictions(make_user, now, ctx):
    from churnwatch.churn.scorer import score_users
    from churnwatch.reporting.summary import summarize

    users = [make_user(id=1, days_since_last_game=40), make_user(id=2, days_since_last_game="Never")]
    s, _ = summarize(score_users(users, now), 2, ctx)
    assert s.avg_days_inactive == "20.00"


def test_high_value_and_vip_thresholds_differ_at_40(make_user, now, ctx):
    from churnwatch.churn.scorer import score_users
    from churnwatch.reporting.summary import summarize

    # 25 + 15 = 40 exactly
    users = [make_user(id=1, days_since_last_game=40, days_since_last_deposit=50, total_deposit_amount=800)]
    preds = score_users(users, now)
    assert preds[0].churn_score == 40

    s, _ = summarize(preds, 1, ctx)
    assert s.high_value_at_risk == 1
    assert s.vip_intervention_count == 0


def test_thresholds_are_independently_tunable(predictions, ctx):
    from churnwatch.reporting.summary import SummaryThresholds, summarize

    s, _ = summarize(predictions, 5, ctx, SummaryThresholds(high_value_min_score=101))
    assert s.high_value_at_risk == 0
    assert s.vip_intervention_count == 1


def test_total_deposit_at_risk_exact_and_zero(make_user, now, ctx):
    from churnwatch.churn.scorer import score_users
    from churnwatch.reporting.summary import summarize

    high = dict(days_since_last_game=75, games_last_7_days=0, games_last_30_days=0)
    users = [
        make_user(id=1, total_deposit_amount=10.10, **high),
        make_user(id=2, total_deposit_amount=20.20, **high),
        make_user(id=3, total_deposit_amount=999.99),
    ]
    s, _ = summarize(score_users(users, now), 3, ctx)
    assert s.total_deposit_at_risk == "30.30"

    s, _ = summarize(score_users([make_user(id=4)], now), 1, ctx)
    assert s.total_deposit_at_risk == "0.00"


def test_empty_batch(ctx):
    from churnwatch.reporting.summary import summarize

    s, records = summarize([], 12, ctx)
    assert records == []
    assert s.total_users_analyzed == 12
    assert s.total_users_predicted == 0
    assert s.high_risk_users == s.low_risk_users == s.active_users == 0
    assert s.immediate_action_required == 0
    assert s.avg_churn_score == "0.00"
    assert s.avg_days_inactive == "0.00"
    assert s.total_deposit_at_risk == "0.00"
    assert s.top_risk_factors == ""


def test_run_metadata(predictions, ctx):
    from churnwatch.reporting.summary import summarize

    s, records = summarize(predictions, 5, ctx)
    assert s.analysis_id == "CHURN_TEST"
    assert s.analysis_date == "2024-06-01T12:00:00.000Z"
    assert s.analyzed_at == "2024-06-01"
    assert s.data_source == "API /v2/ml/churns"
    assert s.domain == "casino.example.com"
    assert s.base_url == "https://api.example.com"
    for r in records:
        assert r.analysis_id == s.analysis_id
        assert r.created_at == s.analysis_date
        assert r.analyzed_at == s.analyzed_at


def test_missing_metadata_defaults_to_na(predictions, ctx):
    from churnwatch.reporting.summary import summarize

    s, records = summarize(predictions, 5, replace(ctx, domain=None, base_url=None, url=None))
    assert s.domain == "N/A"
    assert s.to_dict()["baseUrl"] == "N/A"
    assert records[0].domain is None


def test_generated_analysis_ids_are_unique(predictions, now):
    from churnwatch.reporting.summary import RunContext, summarize

    a, _ = summarize(predictions, 5, RunContext(now=now))
    b, _ = summarize(predictions, 5, RunContext(now=now))
    assert a.analysis_id.startswith("CHURN_")
    assert a.analysis_id != b.analysis_id


def test_summary_is_immutable(predictions, ctx):
    from dataclasses import FrozenInstanceError

    from churnwatch.reporting.summary import summarize

    s, _ = summarize(predictions, 5, ctx)
    with pytest.raises(FrozenInstanceError):
        s.high_risk_users = 0


def test_database_record_is_flat_with_storage_names(predictions, ctx):
    from churnwatch.reporting.summary import database_record, summarize

    s, _ = summarize(predictions, 5, ctx)
    rec = database_record(s)
    assert rec["id"] == "CHURN_TEST"
    assert rec["urgent_action_count"] == s.immediate_action_required
    assert rec["high_value_risk_count"] == s.high_value_at_risk
    assert rec["base_url"] == "https://api.example.com"
    assert all(not isinstance(v, (dict, list, tuple)) for v in rec.values())


def test_run_payload_bundle(predictions, ctx):
    from churnwatch.reporting.summary import run_payload, summarize

    s, records = summarize(predictions, 5, ctx)
    out = run_payload(s, records, ctx)
    assert set(out) == {
        "summary",
        "database_record",
        "user_churn_predictions",
        "total_user_records",
        "url",
        "domain",
        "baseUrl",
    }
    assert out["total_user_records"] == 4
    assert out["summary"]["analysis_id"] == "CHURN_TEST"
