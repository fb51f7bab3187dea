from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any

"""ParsedTrip domain model and ClientType enum.

A ParsedTrip is the canonical, validated form of one imported row. Monetary
fields are integer cents; dates are ISO ``YYYY-MM-DD`` strings.
"""

__all__ = [
    "ClientType",
    "ParsedTrip",
    "COST_FIELDS",
    "DEFAULT_CURRENCY",
]

DEFAULT_CURRENCY = "USD"

# Attribute name on ParsedTrip -> column header in import files
COST_FIELDS: dict[str, str] = {
    "flight_cost": "Flight_Cost",
    "hotel_cost": "Hotel_Cost",
    "ground_transport": "Ground_Transport",
    "activities_tours": "Activities_Tours",
    "meals_cost": "Meals_Cost",
    "insurance_cost": "Insurance_Cost",
    "other_costs": "Other_Costs",
}


class ClientType(str, Enum):
    """Client classification accepted in the ``Client_Type`` column."""
    INDIVIDUAL = "individual"
    CORPORATE = "corporate"
    GROUP = "group"

    @classmethod
    def parse(cls, text: str) -> ClientType | None:
        """Case-insensitive lookup; None when the text is not a known type."""
        try:
            return cls(text.strip().lower())
        except ValueError:
            return None


@dataclass(frozen=True)
class ParsedTrip:
    """One validated trip ready to be persisted.

    ``source_row`` is the import row the trip came from. It does not take part
    in equality and is not written to storage.
    """
    trip_id: str
    client_name: str
    start_date: str  # YYYY-MM-DD
    end_date: str  # YYYY-MM-DD
    destination_country: str
    adults: int
    children: int
    total_travelers: int
    travel_agency: str | None = None
    destination_city: str | None = None
    flight_cost: int = 0  # cents
    hotel_cost: int = 0
    ground_transport: int = 0
    activities_tours: int = 0
    meals_cost: int = 0
    insurance_cost: int = 0
    other_costs: int = 0
    currency: str = DEFAULT_CURRENCY
    commission_rate: Decimal | None = None  # percent
    commission_amount: int | None = None  # cents
    client_id: str | None = None
    client_type: ClientType | None = None
    source_row: int | None = field(default=None, compare=False)

    @property
    def total_cost(self) -> int:
        """Sum of the seven cost fields, in cents."""
        return sum(getattr(self, name) for name in COST_FIELDS)

    def to_record(self) -> dict[str, Any]:
        """Column -> value mapping for the ``trips`` table."""
        return {
            "trip_id": self.trip_id,
            "client_name": self.client_name,
            "travel_agency": self.travel_agency,
            "start_date": self.start_date,
            "end_date": self.end_date,
            "destination_country": self.destination_country,
            "destination_city": self.destination_city,
            "adults": self.adults,
            "children": self.children,
            "total_travelers": self.total_travelers,
            "flight_cost": self.flight_cost,
            "hotel_cost": self.hotel_cost,
            "ground_transport": self.ground_transport,
            "activities_tours": self.activities_tours,
            "meals_cost": self.meals_cost,
            "insurance_cost": self.insurance_cost,
            "other_costs": self.other_costs,
            "currency": self.currency,
            "commission_rate": self.commission_rate,
            "commission_amount": self.commission_amount,
            "client_id": self.client_id,
            "client_type": self.client_type.value if self.client_type else None,
        }

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly form (Decimal rate rendered as float)."""
        record = self.to_record()
        if self.commission_rate is not None:
            record["commission_rate"] = float(self.commission_rate)
        return record
