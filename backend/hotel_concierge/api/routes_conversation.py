# backend/hotel_concierge/api/routes_conversation.py

from typing import Optional

from fastapi import APIRouter, Depends

from hotel_concierge.api.deps import Services, get_origin, get_services
from hotel_concierge.models.conversation_models import (
    ConversationHotelSearchIn,
    SendMessageIn,
    SessionIn,
    StartConversationIn,
)

router = APIRouter(prefix="/api/conversation", tags=["conversation"])


# --------------------------
# Start conversation
# --------------------------
@router.post("/start")
async def start_conversation(
    data: Optional[StartConversationIn] = None,
    services: Services = Depends(get_services),
):
    conversation = await services.agent.start_conversation(data.session_id if data else None)
    return {
        "success": True,
        "sessionId": conversation.session_id,
        "conversationId": conversation.id,
        "message": conversation.last_message.content if conversation.last_message else "",
        "messages": conversation.public_messages(),
    }


# --------------------------
# Send message (one turn)
# --------------------------
@router.post("/message")
async def send_message(
    data: SendMessageIn,
    services: Services = Depends(get_services),
    origin: Optional[str] = Depends(get_origin),
):
    result = await services.agent.handle_message(data.session_id, data.message, origin)
    return {"success": True, **result.to_public()}


# --------------------------
# Explicit completion
# --------------------------
@router.post("/complete-booking")
async def complete_booking(
    data: SessionIn,
    services: Services = Depends(get_services),
    origin: Optional[str] = Depends(get_origin),
):
    result = await services.agent.complete_booking(data.session_id, origin)
    return {"success": True, "data": result.to_public()}


@router.post("/force-complete")
async def force_complete(
    data: SessionIn,
    services: Services = Depends(get_services),
    origin: Optional[str] = Depends(get_origin),
):
    result = await services.agent.force_complete(data.session_id, origin)
    return {"success": True, "data": result.to_public()}


# --------------------------
# Read conversation
# --------------------------
@router.get("/stats")
def conversation_stats(services: Services = Depends(get_services)):
    return {"success": True, "data": services.conversations.stats()}


@router.get("/{session_id}")
def get_conversation(session_id: str, services: Services = Depends(get_services)):
    conversation = services.conversations.get(session_id)
    return {"success": True, "data": conversation.to_public()}


# --------------------------
# Hotel search from chat
# --------------------------
@router.post("/search-hotels")
def search_hotels(data: ConversationHotelSearchIn, services: Services = Depends(get_services)):
    hotels = services.catalog.search(data.search_term, data.city, data.min_price, data.max_price)
    return {
        "success": True,
        "data": [h.to_public() for h in hotels[:10]],
        "count": len(hotels),
    }
