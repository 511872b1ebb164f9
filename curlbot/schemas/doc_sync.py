from typing import List, Optional

from pydantic import BaseModel


class DocSyncRequest(BaseModel):
    owner: str
    repo: str
    path: str


class DocSyncResponse(BaseModel):
    success: bool
    chunks: int = 0
    message: Optional[str] = None


class UploadHookResponse(BaseModel):
    success: bool
    synced: List[str] = []
    failed: List[str] = []
    message: Optional[str] = None
