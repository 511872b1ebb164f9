from fastapi import APIRouter, Depends, HTTPException, Response, status

from curlbot.services.media_store import MediaStore, get_media_store

router = APIRouter(tags=["images"])


@router.get("/images/{key:path}")
async def get_image(key: str, media_store: MediaStore = Depends(get_media_store)):
    """Serve an uploaded consultation photo or voice note."""
    obj = media_store.get(key)
    if obj is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")
    return Response(content=obj.body, media_type=obj.content_type)
