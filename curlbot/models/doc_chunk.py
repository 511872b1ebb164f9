import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Integer, String, Text

from curlbot.database import Base


class DocChunk(Base):
    __tablename__ = "doc_chunks"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    key = Column(Text, nullable=False, unique=True)  # kv/docs/github:owner/repo/path/chunkN
    owner = Column(Text, nullable=False)
    repo = Column(Text, nullable=False)
    path = Column(Text, nullable=False)
    chunk_index = Column(Integer, nullable=False)
    content = Column(Text, nullable=False)
    embedding = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
