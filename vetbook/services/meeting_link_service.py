from urllib.parse import urlencode

from vetbook.core.config import settings


def issue_meeting_link(appointment_id: int, provider_id: int, pet_id: int, pet_owner_id: int) -> str:
    """Video-call URL for an appointment. Regenerated whenever the appointment
    moves so the link always names the current booking."""
    params = {
        "appointmentId": appointment_id,
        "vetId": provider_id,
        "petId": pet_id,
        "petParentId": pet_owner_id,
    }
    return f"{settings.meeting_link_base_url.rstrip('/')}/video-call/?{urlencode(params)}"
