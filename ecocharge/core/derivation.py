"""
Session derivations for stats cards and charts.

Pure functions over a sequence of charging sessions: summary totals,
cost distribution by provider, and month/day bucketed series. Nothing
here performs I/O or mutates its input.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from ecocharge.storage.models import ChargingSession

from .labels import day_label, month_label

ALL_MONTHS = "all"

MONTHLY = "monthly"
DAILY = "daily"

# Illustrative kg CO2 saved per kWh charged. Fixed multiplier, not a model.
CO2_KG_PER_KWH = 0.4

PALETTE = [
    "#10b981",
    "#3b82f6",
    "#f59e0b",
    "#ef4444",
    "#8b5cf6",
    "#ec4899",
    "#6366f1",
]


@dataclass(frozen=True)
class SessionSummary:
    """Totals over a set of sessions."""
    total_cost: float
    total_energy: float
    total_duration_minutes: int
    estimated_co2_saved_kg: float

    @property
    def duration_hours(self) -> int:
        return self.total_duration_minutes // 60

    @property
    def duration_remainder_minutes(self) -> int:
        return self.total_duration_minutes % 60


@dataclass(frozen=True)
class ProviderShare:
    """Summed cost for one provider with its chart color."""
    provider: str
    total_cost: float
    color: str


@dataclass(frozen=True)
class Bucket:
    """One bar of the time series: a month or a single day."""
    label: str
    key: str
    cost: float
    energy: float


@dataclass(frozen=True)
class Dashboard:
    """Everything the presentation layer renders for one filter value."""
    month: str
    sessions: List[ChargingSession]
    summary: SessionSummary
    distribution: List[ProviderShare]
    series: List[Bucket]
    available_months: List[str] = field(default_factory=list)


def filter_sessions(
    sessions: Sequence[ChargingSession], month: str = ALL_MONTHS
) -> List[ChargingSession]:
    """Restrict sessions to one YYYY-MM month, or keep all for "all".

    Always returns a new list.
    """
    if month == ALL_MONTHS:
        return list(sessions)
    return [s for s in sessions if s.date.startswith(month)]


def summarize(sessions: Sequence[ChargingSession]) -> SessionSummary:
    """Sum cost, energy and duration. An empty sequence gives all zeros.

    Values are summed as-is, so a NaN cost or energy propagates into the
    totals.
    """
    total_cost = 0.0
    total_energy = 0.0
    total_duration = 0
    for session in sessions:
        total_cost += session.total_cost
        total_energy += session.total_kwh
        total_duration += session.duration_minutes

    return SessionSummary(
        total_cost=total_cost,
        total_energy=total_energy,
        total_duration_minutes=total_duration,
        estimated_co2_saved_kg=total_energy * CO2_KG_PER_KWH,
    )


def distribution_by_provider(
    sessions: Sequence[ChargingSession],
) -> List[ProviderShare]:
    """Sum cost per provider in order of first appearance.

    Colors cycle through PALETTE by group position.
    """
    totals: Dict[str, float] = {}
    for session in sessions:
        totals[session.provider] = totals.get(session.provider, 0.0) + session.total_cost

    return [
        ProviderShare(
            provider=provider,
            total_cost=cost,
            color=PALETTE[index % len(PALETTE)],
        )
        for index, (provider, cost) in enumerate(totals.items())
    ]


def time_series(sessions: Sequence[ChargingSession], mode: str) -> List[Bucket]:
    """Bucket cost and energy by month ("monthly") or by date ("daily").

    Buckets are ordered ascending by key and only exist for keys that have
    at least one session. Dates that don't parse are still grouped under
    their raw key.

    Args:
        sessions: Sessions to aggregate (already filtered)
        mode: MONTHLY or DAILY

    Returns:
        Ordered list of buckets

    Raises:
        ValueError: If mode is not MONTHLY or DAILY
    """
    if mode == MONTHLY:
        key_of = _month_key_of
        label_of = month_label
    elif mode == DAILY:
        key_of = _date_key
        label_of = day_label
    else:
        raise ValueError(f"mode must be '{MONTHLY}' or '{DAILY}', got {mode!r}")

    costs: Dict[str, float] = {}
    energies: Dict[str, float] = {}
    for session in sessions:
        key = key_of(session)
        costs[key] = costs.get(key, 0.0) + session.total_cost
        energies[key] = energies.get(key, 0.0) + session.total_kwh

    return [
        Bucket(label=label_of(key), key=key, cost=costs[key], energy=energies[key])
        for key in sorted(costs)
    ]


def series_mode_for(month: str) -> str:
    """Monthly buckets for the unfiltered view, daily inside a single month."""
    return MONTHLY if month == ALL_MONTHS else DAILY


def available_months(all_sessions: Sequence[ChargingSession]) -> List[str]:
    """Distinct YYYY-MM keys across all sessions, most recent first."""
    return sorted({s.month_key for s in all_sessions}, reverse=True)


def derive_dashboard(
    all_sessions: Sequence[ChargingSession], month: str = ALL_MONTHS
) -> Dashboard:
    """Compute every derived view for the given month filter.

    Available months always come from the unfiltered collection.
    """
    filtered = filter_sessions(all_sessions, month)
    return Dashboard(
        month=month,
        sessions=filtered,
        summary=summarize(filtered),
        distribution=distribution_by_provider(filtered),
        series=time_series(filtered, series_mode_for(month)),
        available_months=available_months(all_sessions),
    )


def _month_key_of(session: ChargingSession) -> str:
    return session.month_key


def _date_key(session: ChargingSession) -> str:
    return session.date
