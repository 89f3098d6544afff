from fastapi import APIRouter, Depends, File, UploadFile

from marketplace.core.auth import get_current_user
from marketplace.core.errors import ValidationFailed
from marketplace.models.profile import User
from marketplace.services.storage import ObjectStore, get_object_store, upload_image

router = APIRouter(prefix="/api", tags=["image"])


@router.post("/image")
async def upload(
    image: UploadFile = File(...),
    me: User = Depends(get_current_user),
    store: ObjectStore = Depends(get_object_store),
):
    if not image.filename:
        raise ValidationFailed("file_name_missing")

    contents = await image.read()
    image_url = upload_image(store, me.id, image.filename, contents, image.content_type)
    return {"imageUrl": image_url}
