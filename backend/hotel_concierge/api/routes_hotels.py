# backend/hotel_concierge/api/routes_hotels.py

from typing import Optional

from fastapi import APIRouter, Depends, Query

from hotel_concierge.api.deps import Services, get_services
from hotel_concierge.core.errors import NotFound
from hotel_concierge.models.hotel_models import HotelQuery

router = APIRouter(prefix="/api/hotels", tags=["hotels"])


@router.get("/")
def list_hotels(
    location: Optional[str] = None,
    brand: Optional[str] = None,
    min_price: Optional[float] = Query(None, alias="minPrice"),
    max_price: Optional[float] = Query(None, alias="maxPrice"),
    services: Services = Depends(get_services),
):
    hotels = services.catalog.filter(
        HotelQuery(location=location, brand=brand, min_price=min_price, max_price=max_price)
    )
    return {"success": True, "count": len(hotels), "data": [h.to_public() for h in hotels]}


@router.get("/search")
def search_hotels(
    q: Optional[str] = None,
    city: Optional[str] = None,
    min_price: Optional[float] = Query(None, alias="minPrice"),
    max_price: Optional[float] = Query(None, alias="maxPrice"),
    services: Services = Depends(get_services),
):
    hotels = services.catalog.search(q, city, min_price, max_price)
    return {"success": True, "count": len(hotels), "data": [h.to_public() for h in hotels]}


@router.get("/stats")
def hotel_stats(services: Services = Depends(get_services)):
    return {"success": True, "data": services.catalog.stats()}


@router.get("/{hotel_id}")
def get_hotel(hotel_id: str, services: Services = Depends(get_services)):
    hotel = services.catalog.get(hotel_id)
    if hotel is None:
        raise NotFound("hotel", hotel_id)
    return {"success": True, "data": hotel.to_public()}
