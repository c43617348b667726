# backend/hotel_concierge/services/hotel_catalog.py

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from hotel_concierge.core.logger import get_logger
from hotel_concierge.models.hotel_models import Hotel, HotelQuery

logger = get_logger("catalog")

MAX_SUGGESTIONS = 3


class HotelCatalog:
    """
    Read-only hotel catalog, loaded once and shared by every request.

    Inactive hotels are kept in ``all_hotels`` for completeness but never
    matched, searched or returned by ``get``. ``reload()`` builds a new
    catalog instead of mutating this one.
    """

    def __init__(self, hotels: Iterable[Hotel], source: Optional[str] = None):
        self._hotels: Tuple[Hotel, ...] = tuple(hotels)
        self._by_id: Dict[str, Hotel] = {h.id: h for h in self._hotels}
        self.source = source

    @classmethod
    def from_json(cls, path: str) -> "HotelCatalog":
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        hotels = [Hotel.model_validate(item) for item in raw]
        logger.info(f"Loaded {len(hotels)} hotels from {path}")
        return cls(hotels, source=path)

    def reload(self) -> "HotelCatalog":
        if not self.source:
            return self
        return HotelCatalog.from_json(self.source)

    # -----------------------------------------------------------
    # Lookups
    # -----------------------------------------------------------
    @property
    def all_hotels(self) -> Tuple[Hotel, ...]:
        return self._hotels

    @property
    def hotels(self) -> List[Hotel]:
        return [h for h in self._hotels if h.is_active]

    def __len__(self) -> int:
        return len(self.hotels)

    def get(self, hotel_id: str) -> Optional[Hotel]:
        hotel = self._by_id.get(hotel_id)
        if hotel is None or not hotel.is_active:
            return None
        return hotel

    def find_matching_hotels(self, location: str) -> List[Hotel]:
        """
        Up to three active hotels whose location contains the query or is
        contained by it, case-insensitive, in catalog order.
        """
        query = (location or "").strip().lower()
        if not query:
            return []

        matches = []
        for hotel in self.hotels:
            hotel_location = hotel.location.lower()
            if query in hotel_location or hotel_location in query:
                matches.append(hotel)
            if len(matches) == MAX_SUGGESTIONS:
                break
        return matches

    # -----------------------------------------------------------
    # Search / filter
    # -----------------------------------------------------------
    def filter(self, query: HotelQuery) -> List[Hotel]:
        hotels = self.hotels
        if query.location:
            hotels = [h for h in hotels if h.location.lower() == query.location.lower()]
        if query.brand:
            hotels = [h for h in hotels if h.brand.lower() == query.brand.lower()]
        return _within_price(hotels, query.min_price, query.max_price)

    def search(
        self,
        term: Optional[str] = None,
        city: Optional[str] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
    ) -> List[Hotel]:
        hotels = self.hotels

        if city:
            city_lower = city.lower()
            hotels = [
                h for h in hotels
                if city_lower in (h.city.lower(), h.location.lower())
            ]

        if term:
            term_lower = term.lower()
            hotels = [
                h for h in hotels
                if any(
                    term_lower in field.lower()
                    for field in (h.name, h.location, h.city, h.brand, h.address)
                )
            ]

        return _within_price(hotels, min_price, max_price)

    def stats(self) -> Dict[str, Any]:
        hotels = self.hotels
        total = len(hotels)
        return {
            "totalHotels": total,
            "averageRating": round(sum(h.rating for h in hotels) / total, 2) if total else 0,
            "averagePricePerNight": round(sum(h.price_per_night for h in hotels) / total, 2) if total else 0,
            "totalRooms": sum(h.total_rooms for h in hotels),
        }


def _within_price(hotels: List[Hotel], min_price: Optional[float], max_price: Optional[float]) -> List[Hotel]:
    if min_price is not None:
        hotels = [h for h in hotels if h.price_per_night >= min_price]
    if max_price is not None:
        hotels = [h for h in hotels if h.price_per_night <= max_price]
    return hotels
