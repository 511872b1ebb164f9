from curlbot.schemas.admin import FollowupRunResponse
from curlbot.schemas.doc_sync import DocSyncRequest, DocSyncResponse, UploadHookResponse

__all__ = [
    "DocSyncRequest",
    "DocSyncResponse",
    "UploadHookResponse",
    "FollowupRunResponse",
]
