"""
Business directory backed by a JSON data file.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..domain.models import Appointment, Availability, Business, Service

logger = logging.getLogger(__name__)

SAMPLE_DATA_FILE = Path(__file__).parent / "sample_data.json"


class JsonBusinessDirectory:
    """
    Loads businesses and seed appointments from a JSON file.

    Expected shape::

        {
          "businesses": [{"id", "name", "phone", "services": [...], "availability": {...}}],
          "appointments": [{"id", "businessId", "service", "duration", "date", "time", ...}]
        }
    """

    def __init__(self, data_file: Optional[Path] = None):
        """
        Initialize the directory.

        Args:
            data_file: JSON file to load; defaults to the bundled sample data
        """
        self.data_file = data_file or SAMPLE_DATA_FILE
        self._businesses: Dict[str, Business] = {}
        self.appointments: List[Appointment] = []
        self._load_data()

    def _load_data(self) -> None:
        """Load businesses and appointments from the JSON file."""
        if not self.data_file.exists():
            raise FileNotFoundError(f"Data file not found: {self.data_file}")

        try:
            with open(self.data_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON in {self.data_file}: {exc}") from exc

        for raw in data.get("businesses", []):
            try:
                business = self._parse_business(raw)
            except (KeyError, ValueError, TypeError, AttributeError) as exc:
                logger.warning("Skipping invalid business entry %r: %s", _entry_id(raw), exc)
                continue
            self._businesses[business.id] = business

        for raw in data.get("appointments", []):
            try:
                self.appointments.append(Appointment.from_dict(raw))
            except (KeyError, ValueError, TypeError, AttributeError) as exc:
                logger.warning("Skipping invalid appointment entry %r: %s", _entry_id(raw), exc)

        logger.debug(
            "Loaded %d business(es) and %d appointment(s) from %s",
            len(self._businesses), len(self.appointments), self.data_file,
        )

    @staticmethod
    def _parse_business(raw: Dict[str, Any]) -> Business:
        return Business(
            id=raw["id"],
            name=raw.get("name", raw["id"]),
            phone=raw.get("phone", ""),
            services=[Service.from_dict(s) for s in raw.get("services", [])],
            availability=Availability.from_dict(raw.get("availability")),
        )

    async def get_business(self, business_id: str) -> Optional[Business]:
        return self._businesses.get(business_id)

    async def list_businesses(self) -> List[Business]:
        return list(self._businesses.values())


def _entry_id(raw: Any) -> Any:
    return raw.get("id") if isinstance(raw, dict) else raw
