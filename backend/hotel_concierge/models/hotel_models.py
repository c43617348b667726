# backend/hotel_concierge/models/hotel_models.py

from typing import Any, Dict, List, Optional

from hotel_concierge.models.conversation_models import CamelModel


class Hotel(CamelModel):
    id: str
    name: str
    brand: str = ""
    location: str
    city: str = ""
    state: str = ""
    country: str = ""
    address: str = ""
    rating: float = 0
    stars: int = 0
    price_per_night: float = 0
    total_rooms: int = 100
    amenities: List[str] = []
    image: str = ""
    description: str = ""
    is_active: bool = True

    def summary(self) -> Dict[str, Any]:
        """Fields shown to a guest when the hotel is suggested in chat."""
        return self.model_dump(
            by_alias=True,
            include={
                "id", "name", "location", "brand", "rating", "stars",
                "price_per_night", "amenities", "image", "description",
            },
        )

    def to_public(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class HotelQuery(CamelModel):
    location: Optional[str] = None
    brand: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
