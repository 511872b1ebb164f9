from curlbot.models.doc_chunk import DocChunk

__all__ = ["DocChunk"]
