import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response

from inkpages import dependencies as deps

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/images/{image_path:path}")
def get_image(image_path: str, images=Depends(deps.get_image_service)):
    """
    Serve uploaded images directly from CouchDB
    """
    image_data, content_type = images.get_image(image_path)

    if not image_data or not content_type:
        raise HTTPException(status_code=404, detail="Image not found")

    # Set proper content length header
    headers = {
        "Content-Length": str(len(image_data)),
        "Accept-Ranges": "bytes",
        "Cache-Control": "public, max-age=31536000, immutable",
    }

    return Response(content=image_data, media_type=content_type, headers=headers)
