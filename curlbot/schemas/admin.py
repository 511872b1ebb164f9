from pydantic import BaseModel


class FollowupRunResponse(BaseModel):
    scanned: int
    stale: int
    emails_sent: int
    nudges_sent: int
    errors: int
