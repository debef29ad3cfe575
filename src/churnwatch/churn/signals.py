# src/churnwatch/churn/signals.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Literal, Tuple

RiskTier = Literal["High", "Medium", "Low-Medium", "Low"]
PlayerStatus = Literal["Churned", "At Risk", "Dormant", "Active"]

RISK_TIERS: Tuple[RiskTier, ...] = ("High", "Medium", "Low-Medium", "Low")
PLAYER_STATUSES: Tuple[PlayerStatus, ...] = ("Churned", "At Risk", "Dormant", "Active")

TIER_MARKERS: Dict[str, str] = {
    "High": "🔴",
    "Medium": "🟡",
    "Low-Medium": "🟠",
    "Low": "🟢",
}


@dataclass(frozen=True)
class Signal:
    """
    A risk factor or retention action.

    `text` is the clean, marker-free wording used for aggregation and storage;
    `marker` is presentation only.
    """
    code: str
    marker: str
    text: str

    @property
    def display(self) -> str:
        return f"{self.marker} {self.text}"


# code -> (marker, text template)
FACTOR_TEMPLATES: Dict[str, Tuple[str, str]] = {
    "inactive_critical": ("🔴", "No game activity for {days} days"),
    "inactive_warning": ("🟡", "Inactive for {days} days"),
    "inactive_recent": ("🟠", "{days} days since last game"),
    "zero_games_7d": ("🔴", "Zero games in last 7 days"),
    "zero_games_30d": ("🔴", "Zero games in last 30 days"),
    "low_games_30d": ("🟡", "Only {games} games in 30 days"),
    "never_deposited": ("🔴", "Never deposited (free player)"),
    "deposit_inactive": ("🔴", "{days} days since last deposit"),
    "deposit_declining": ("🟡", "{days} days since deposit"),
    "high_bonus_cancel": ("🟡", "High bonus cancel rate ({rate}%)"),
    "zero_bonus_completion": ("🔴", "Never completed any bonus"),
    "new_low_engagement": ("🔴", "New user, low engagement"),
    "active_engaged": ("✅", "Active and engaged"),
}

ACTION_TEMPLATES: Dict[str, Tuple[str, str]] = {
    "first_deposit_bonus": ("💰", "First deposit bonus: 200% + 100 free spins"),
    "reload_bonus": ("💳", "Reload bonus: 150% up to $500"),
    "win_back_offer": ("💰", "Win-back offer: 50 free spins"),
    "no_wagering_cashback": ("🎁", "No-wagering cashback offers"),
    "welcome_campaign": ("👋", "Welcome campaign: Daily login rewards"),
    "urgent_reactivation": ("🚨", "Urgent: High-value reactivation offer"),
    "reactivation_email": ("📧", "Email: 'We miss you - $50 bonus inside'"),
    "engagement_campaign": ("⚠️", "Priority: Engagement campaign"),
    "promote_favorite_games": ("🎮", "Promote favorite games"),
    "wake_up_offer": ("💤", "Wake-up: 100 free spins + $20 bonus"),
    "vip_intervention": ("💎", "VIP intervention: Personal account manager"),
}

# Status -> actions appended once the rule fold is done
STATUS_ACTIONS: Dict[str, Tuple[str, ...]] = {
    "Churned": ("urgent_reactivation", "reactivation_email"),
    "At Risk": ("engagement_campaign", "promote_favorite_games"),
    "Dormant": ("wake_up_offer",),
}


def _whole(x: float) -> str:
    return f"{x:.0f}"


def factor(code: str, **params: float) -> Signal:
    marker, template = FACTOR_TEMPLATES[code]
    return Signal(code=code, marker=marker, text=template.format(**{k: _whole(v) for k, v in params.items()}))


def action(code: str) -> Signal:
    marker, text = ACTION_TEMPLATES[code]
    return Signal(code=code, marker=marker, text=text)


def tier_display(tier: str) -> str:
    return f"{TIER_MARKERS[tier]} {tier}"
