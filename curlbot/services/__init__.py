from curlbot.services.session_store import (
    ConsultationSession,
    SessionStore,
    get_session_store,
)
from curlbot.services.state_machine import (
    ConsultationStatus,
    InvalidTransitionError,
    advance_for_message,
    can_transition,
    mark_summary_ready,
    transition,
)
