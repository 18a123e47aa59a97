import json

import pytest

from payrecon.settings import (
    DEFAULT_COMMISSION_RULES, CommissionRule, ReconSettings, load_settings, settings_from_dict,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("RECON_MATCH_WINDOW", "RECON_AGG_WINDOW", "RECON_TIMEZONE"):
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    s = ReconSettings()
    assert s.match_time_window == 45
    assert s.aggregation_time_window == 5
    assert s.timezone == "Asia/Shanghai"
    assert [(r.keyword, r.rate) for r in s.commission_rules] == [("洗", 0.10), ("谢", 0.15)]


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("RECON_MATCH_WINDOW", "30")
    monkeypatch.setenv("RECON_AGG_WINDOW", "2.5")
    monkeypatch.setenv("RECON_TIMEZONE", "UTC")
    s = ReconSettings()
    assert s.match_time_window == 30.0
    assert s.aggregation_time_window == 2.5
    assert s.timezone == "UTC"


def test_env_override_must_be_numeric(monkeypatch):
    monkeypatch.setenv("RECON_MATCH_WINDOW", "soon")
    with pytest.raises(ValueError, match="RECON_MATCH_WINDOW"):
        ReconSettings()


@pytest.mark.parametrize("kwargs", [
    {"match_time_window": -1},
    {"aggregation_time_window": -0.5},
    {"timezone": "Mars/Olympus"},
])
def test_invalid_settings_are_rejected(kwargs):
    with pytest.raises(ValueError):
        ReconSettings(**kwargs)


def test_negative_commission_rate_is_rejected():
    with pytest.raises(ValueError):
        CommissionRule(name="bad", keyword="x", rate=-0.1)


def test_empty_keyword_never_matches():
    rule = CommissionRule(name="blank", keyword="", rate=0.5)
    assert not rule.matches("anything")
    assert not rule.matches("")
    assert CommissionRule(name="full", keyword="洗", rate=0.1).matches("洗头")


def test_rules_list_is_stored_as_tuple():
    s = ReconSettings(commission_rules=[CommissionRule(name="a", keyword="a", rate=0.1)])
    assert isinstance(s.commission_rules, tuple)


def test_settings_from_dict_camel_case():
    s = settings_from_dict({
        "matchTimeWindow": 30,
        "aggregationTimeWindow": 3,
        "commissionRules": [
            {"id": "1", "name": "Referral", "keyword": "谢", "rate": 0.2},
        ],
    })
    assert s.match_time_window == 30.0
    assert s.aggregation_time_window == 3.0
    assert s.commission_rules == (CommissionRule(name="Referral", keyword="谢", rate=0.2, id="1"),)


def test_settings_from_dict_keeps_defaults_for_missing_keys():
    s = settings_from_dict({"match_time_window": 10})
    assert s.match_time_window == 10.0
    assert s.aggregation_time_window == 5
    assert s.commission_rules == DEFAULT_COMMISSION_RULES


def test_load_settings(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"matchTimeWindow": 60, "timezone": "UTC"}), encoding="utf-8")
    s = load_settings(str(path))
    assert s.match_time_window == 60.0
    assert s.timezone == "UTC"


def test_to_dict_round_trips_through_from_dict():
    s = ReconSettings(match_time_window=20)
    assert settings_from_dict(s.to_dict()) == s
