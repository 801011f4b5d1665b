"""
Data models for storage layer.

Defines the charging session record and the known provider list.
"""

from dataclasses import dataclass

PROVIDERS = [
    "ZES",
    "Eşarj",
    "Trugo",
    "Voltrun",
    "Tesla Supercharger",
    "Astor",
    "TRCharge",
    "5Şarj",
    "OtoPriz",
    "RotaWatt",
    "Evde Şarj",
    "Diğer",
]


@dataclass(frozen=True)
class ChargingSession:
    """Immutable record of one charging event.
    
    Sessions are never updated in place. They are created once with a
    fresh id and removed by id.
    """
    id: str
    provider: str
    date: str  # YYYY-MM-DD
    duration_minutes: int
    price_per_kwh: float
    total_kwh: float
    total_cost: float

    @property
    def month_key(self) -> str:
        """YYYY-MM prefix of the session date."""
        return self.date[:7]
