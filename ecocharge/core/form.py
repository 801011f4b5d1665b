"""
Charging session input form.

Turns raw user input into a ChargingSession. Strict validation keeps
malformed numbers out of the store and out of the totals.
"""

import math
import re
import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, Mapping, Optional

from ecocharge.storage.models import ChargingSession

from .labels import parse_date

_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class ValidationError(ValueError):
    """Raised when form input cannot become a charging session."""
    def __init__(self, field_name: str, message: str):
        super().__init__(f"{field_name}: {message}")
        self.field = field_name


def compute_total_cost(price_per_kwh: float, total_kwh: float) -> float:
    """Price times energy, rounded to 2 decimal places.

    Rounds half up on the decimal value so 0.125 becomes 0.13, as a
    cashier would.
    """
    cost = Decimal(str(price_per_kwh)) * Decimal(str(total_kwh))
    return float(cost.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def _today() -> str:
    return date.today().isoformat()


@dataclass
class SessionForm:
    """Raw form fields, as typed by the user."""
    provider: str = ""
    date: str = field(default_factory=_today)
    duration_minutes: str = ""
    price_per_kwh: str = ""
    total_kwh: str = ""
    total_cost: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Mapping) -> "SessionForm":
        """Build a form from a mapping such as one entry of an import file.

        Both snake_case and the camelCase names of exported records are
        accepted. Values are converted to strings for uniform validation.

        Raises:
            ValidationError: If the mapping has unknown keys
        """
        aliases = {
            "provider": "provider",
            "company": "provider",
            "date": "date",
            "duration_minutes": "duration_minutes",
            "durationMinutes": "duration_minutes",
            "price_per_kwh": "price_per_kwh",
            "pricePerKwh": "price_per_kwh",
            "total_kwh": "total_kwh",
            "totalKwh": "total_kwh",
            "total_cost": "total_cost",
            "totalCost": "total_cost",
        }
        unknown = set(data.keys()) - set(aliases) - {"id"}
        if unknown:
            raise ValidationError("record", f"unknown keys {sorted(unknown)}")

        values = {}
        for key, value in data.items():
            if key == "id" or value is None:
                continue
            values[aliases[key]] = str(value)
        return cls(**values)

    def to_session(
        self, id_factory: Callable[[], str] = lambda: str(uuid.uuid4())
    ) -> ChargingSession:
        """Validate every field and build a session with a fresh id.

        Args:
            id_factory: Callable producing a new unique id

        Returns:
            The validated ChargingSession

        Raises:
            ValidationError: On the first invalid field
        """
        provider = (self.provider or "").strip()
        if not provider:
            raise ValidationError("provider", "is required")

        session_date = (self.date or "").strip()
        if not _DATE_PATTERN.match(session_date) or parse_date(session_date) is None:
            raise ValidationError("date", f"must be a YYYY-MM-DD calendar date, got {self.date!r}")

        duration = _parse_duration(self.duration_minutes)
        price = _parse_number("price_per_kwh", self.price_per_kwh)
        kwh = _parse_number("total_kwh", self.total_kwh)

        if self.total_cost is None or not str(self.total_cost).strip():
            cost = compute_total_cost(price, kwh)
        else:
            cost = _parse_number("total_cost", self.total_cost)

        return ChargingSession(
            id=id_factory(),
            provider=provider,
            date=session_date,
            duration_minutes=duration,
            price_per_kwh=price,
            total_kwh=kwh,
            total_cost=cost,
        )


def _parse_duration(raw: str) -> int:
    text = str(raw).strip()
    try:
        value = int(text)
    except ValueError:
        raise ValidationError("duration_minutes", f"must be a whole number of minutes, got {raw!r}")
    if value < 1:
        raise ValidationError("duration_minutes", "must be at least 1")
    return value


def _parse_number(field_name: str, raw: str) -> float:
    text = str(raw).strip().replace(",", ".")
    try:
        value = float(text)
    except ValueError:
        raise ValidationError(field_name, f"must be a number, got {raw!r}")
    if math.isnan(value) or math.isinf(value):
        raise ValidationError(field_name, f"must be a finite number, got {raw!r}")
    if value < 0:
        raise ValidationError(field_name, "cannot be negative")
    return value
