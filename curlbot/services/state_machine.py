from enum import Enum


class ConsultationStatus(str, Enum):
    STARTED = "started"
    PHOTO_RECEIVED = "photo-received"
    MIDWAY = "midway"
    SUMMARY_READY = "summary-ready"


VALID_TRANSITIONS = {
    ConsultationStatus.STARTED: [
        ConsultationStatus.PHOTO_RECEIVED,
        ConsultationStatus.MIDWAY,
        ConsultationStatus.SUMMARY_READY,
    ],
    ConsultationStatus.PHOTO_RECEIVED: [ConsultationStatus.MIDWAY, ConsultationStatus.SUMMARY_READY],
    ConsultationStatus.MIDWAY: [ConsultationStatus.SUMMARY_READY],
    # Terminal until the session is reset (deleted).
    ConsultationStatus.SUMMARY_READY: [],
}


class InvalidTransitionError(Exception):
    def __init__(self, from_status: ConsultationStatus, to_status: ConsultationStatus):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(f"Invalid transition: {from_status.value} -> {to_status.value}")


def can_transition(from_status: ConsultationStatus, to_status: ConsultationStatus) -> bool:
    """Check if transition is valid."""
    return to_status in VALID_TRANSITIONS.get(from_status, [])


def transition(from_status: ConsultationStatus, to_status: ConsultationStatus) -> ConsultationStatus:
    """Perform status transition. Raises InvalidTransitionError if not allowed."""
    if not can_transition(from_status, to_status):
        raise InvalidTransitionError(from_status, to_status)
    return to_status


def advance_for_message(status: ConsultationStatus, *, has_media: bool, has_text: bool) -> ConsultationStatus:
    """Progress a consultation after an inbound WhatsApp message."""
    if status == ConsultationStatus.STARTED:
        if has_media:
            return transition(status, ConsultationStatus.PHOTO_RECEIVED)
        if has_text:
            return transition(status, ConsultationStatus.MIDWAY)
    elif status == ConsultationStatus.PHOTO_RECEIVED and has_text:
        return transition(status, ConsultationStatus.MIDWAY)
    return status


def mark_summary_ready(status: ConsultationStatus) -> ConsultationStatus:
    """Move to summary-ready; a no-op when the summary is already ready."""
    if status == ConsultationStatus.SUMMARY_READY:
        return status
    return transition(status, ConsultationStatus.SUMMARY_READY)
