"""
Image business logic.
"""

from __future__ import annotations

import logging

from core.errors import NotFoundError

from . import repository
from .upload import ReceivedFile

logger = logging.getLogger(__name__)


async def create_image(upload: ReceivedFile) -> dict:
    image_id = await repository.insert_image(
        filename=upload.filename,
        mimetype=upload.mimetype,
        data=upload.data,
    )
    logger.info("Stored image %d (%s, %d bytes).", image_id, upload.mimetype, upload.size_bytes)
    return {"id": image_id}


async def get_image(image_id: int) -> dict:
    row = await repository.get_image(image_id)
    if row is None:
        raise NotFoundError("Image not found")
    return {
        "mimetype": str(row["mimetype"]),
        "data": bytes(row["data"]),
    }


async def delete_image(image_id: int) -> None:
    deleted = await repository.delete_image(image_id)
    if not deleted:
        raise NotFoundError("Image not found")
