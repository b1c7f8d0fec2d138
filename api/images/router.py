"""
Image API endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from core import config, responses
from core.dispatch import dispatch

from . import service, upload

router = APIRouter()


@router.post("/upload", status_code=201)
async def upload_image(
    file: upload.ReceivedFile = Depends(upload.receive_upload),
) -> dict:
    """
    Store a single uploaded file. The body is fully buffered (and size-checked)
    before the handler and its deadline start.
    """
    return await dispatch(
        service.create_image,
        file,
        timeout_s=config.upload_timeout_seconds(),
        label="upload_image",
    )


@router.get("/image/{image_id}")
async def get_image(image_id: int) -> Response:
    image = await dispatch(
        service.get_image,
        image_id,
        timeout_s=config.request_timeout_seconds(),
        label="get_image",
    )
    return responses.binary_response(image["data"], image["mimetype"])


@router.delete("/image/{image_id}", status_code=204)
async def delete_image(image_id: int) -> Response:
    await dispatch(
        service.delete_image,
        image_id,
        timeout_s=config.request_timeout_seconds(),
        label="delete_image",
    )
    return responses.no_content()
