"""
Handling of Zoom webhook notifications.

Meeting lifecycle notifications update the status of the linked
event; participant notifications update the matching attendee.
Notifications for meetings that are not linked to any event are
ignored.
"""

import logging
from typing import Any, Dict

from ..schemas.zoom import WebhookEvent
from .attendee_service import AttendeeService
from .event_service import EventService

logger = logging.getLogger(__name__)

MEETING_STATUS = {
    "meeting.started": "LIVE",
    "meeting.ended": "ENDED",
}
PARTICIPANT_STATUS = {
    "meeting.participant_joined": "ATTENDED",
    "meeting.participant_left": "LEFT",
}


class WebhookService:
    @classmethod
    async def process_event(cls, event: WebhookEvent) -> Dict[str, Any]:
        """Apply a webhook notification and report what changed."""
        meeting = event.payload.get("object")
        if not isinstance(meeting, dict):
            logger.warning("Ignoring %s notification without a meeting object", event.event)
            return {"event": event.event, "updated": 0}
        meeting_id = str(meeting.get("id", ""))

        if event.event in MEETING_STATUS:
            status = MEETING_STATUS[event.event]
            updated = await EventService.set_status_for_meeting(meeting_id, status)
            logger.info("Meeting %s %s, %d event(s) marked %s", meeting_id, event.event, updated, status)
            return {"event": event.event, "updated": updated}

        if event.event in PARTICIPANT_STATUS:
            participant = meeting.get("participant")
            email = participant.get("email") if isinstance(participant, dict) else None
            if not isinstance(email, str) or not email:
                logger.info("Participant event for meeting %s without email", meeting_id)
                return {"event": event.event, "updated": 0}
            updated = await AttendeeService.set_status_by_email(
                meeting_id, email, PARTICIPANT_STATUS[event.event]
            )
            return {"event": event.event, "updated": updated}

        logger.info("Unhandled webhook event: %s", event.event)
        return {"event": event.event, "updated": 0}
