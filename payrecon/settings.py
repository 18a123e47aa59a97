from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Tuple

import pytz

# NOTE:
# - Settings are immutable for the duration of a run.
# - You can override the defaults with environment variables.
#
# Suggested env overrides:
#   RECON_MATCH_WINDOW   (minutes, default 45)
#   RECON_AGG_WINDOW     (minutes, default 5)
#   RECON_TIMEZONE       (pytz name, default Asia/Shanghai)


def _env_float(name: str, default: str) -> float:
    raw = os.environ.get(name, default)
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number of minutes, got {raw!r}")


@dataclass(frozen=True)
class CommissionRule:
    """Keyword-triggered commission applied to a ledger record's raw amount."""
    name: str
    keyword: str
    rate: float
    id: str = ""

    def __post_init__(self):
        if self.rate < 0:
            raise ValueError(f"Commission rate must not be negative: {self.name} ({self.rate})")

    def matches(self, remark: str) -> bool:
        # An empty keyword would match every remark; treat it as unset.
        return bool(self.keyword) and self.keyword in remark


DEFAULT_COMMISSION_RULES: Tuple[CommissionRule, ...] = (
    CommissionRule(name="洗+谢 (Full)", keyword="洗", rate=0.10, id="1"),
    CommissionRule(name="谢 (Referral)", keyword="谢", rate=0.15, id="2"),
)


@dataclass(frozen=True)
class ReconSettings:
    # Max minutes between a ledger record and a payment for them to match
    match_time_window: float = field(default_factory=lambda: _env_float("RECON_MATCH_WINDOW", "45"))

    # Max minutes between same-client (or same-counterparty) records to merge them
    aggregation_time_window: float = field(default_factory=lambda: _env_float("RECON_AGG_WINDOW", "5"))

    # Evaluated in order; the first rule whose keyword is in the remark wins
    commission_rules: Tuple[CommissionRule, ...] = DEFAULT_COMMISSION_RULES

    # Timezone used to stamp processed_at
    timezone: str = field(default_factory=lambda: os.environ.get("RECON_TIMEZONE", "Asia/Shanghai"))

    def __post_init__(self):
        if self.match_time_window < 0:
            raise ValueError(f"match_time_window must be >= 0, got {self.match_time_window}")
        if self.aggregation_time_window < 0:
            raise ValueError(f"aggregation_time_window must be >= 0, got {self.aggregation_time_window}")
        # Accept lists from callers but store a tuple
        object.__setattr__(self, "commission_rules", tuple(self.commission_rules))
        try:
            pytz.timezone(self.timezone)
        except pytz.UnknownTimeZoneError:
            raise ValueError(f"Unknown timezone: {self.timezone}")

    @property
    def tz(self):
        return pytz.timezone(self.timezone)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "match_time_window": self.match_time_window,
            "aggregation_time_window": self.aggregation_time_window,
            "commission_rules": [
                {"id": r.id, "name": r.name, "keyword": r.keyword, "rate": r.rate}
                for r in self.commission_rules
            ],
            "timezone": self.timezone,
        }


def _get(raw: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for k in keys:
        if k in raw and raw[k] is not None:
            return raw[k]
    return default


def settings_from_dict(raw: Dict[str, Any]) -> ReconSettings:
    """Build settings from a config-panel style dict (camelCase or snake_case keys)."""
    base = ReconSettings()
    rules_raw = _get(raw, "commission_rules", "commissionRules")
    if rules_raw is None:
        rules = base.commission_rules
    else:
        rules = tuple(
            CommissionRule(
                name=str(r.get("name", "")),
                keyword=str(r.get("keyword", "")),
                rate=float(r.get("rate", 0.0)),
                id=str(r.get("id", "")),
            )
            for r in rules_raw
        )

    return ReconSettings(
        match_time_window=float(_get(raw, "match_time_window", "matchTimeWindow", default=base.match_time_window)),
        aggregation_time_window=float(_get(raw, "aggregation_time_window", "aggregationTimeWindow",
                                           default=base.aggregation_time_window)),
        commission_rules=rules,
        timezone=str(_get(raw, "timezone", default=base.timezone)),
    )


def load_settings(path: str) -> ReconSettings:
    with open(path, "r", encoding="utf-8") as f:
        return settings_from_dict(json.load(f))


DEFAULT_SETTINGS = ReconSettings()
