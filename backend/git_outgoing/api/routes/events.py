from fastapi import APIRouter

from git_outgoing.models.events import RepoEvent
from git_outgoing.services.outgoing_service import outgoing_service

router = APIRouter()


@router.post("/events")
async def receive_event(event: RepoEvent) -> dict[str, str]:
    outgoing_service.dispatcher.submit(event)
    return {
        "status": "accepted",
        "event_type": str(event.event_type),
        "timestamp": event.timestamp.isoformat(),
    }
