"""
Product API endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Query, Response

from core import config, responses
from core.dispatch import dispatch

from . import schemas, service

router = APIRouter()


@router.get("/products")
async def list_products(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1),
) -> dict:
    """
    Newest products first. `limit` is clamped to MAX_PAGE_LIMIT.
    """
    return await dispatch(
        service.list_products,
        page=page,
        limit=limit,
        timeout_s=config.request_timeout_seconds(),
        label="list_products",
    )


@router.get("/products/{product_id}")
async def get_product(product_id: int) -> dict:
    return await dispatch(
        service.get_product,
        product_id,
        timeout_s=config.request_timeout_seconds(),
        label="get_product",
    )


@router.post("/products", status_code=201)
async def create_product(request: schemas.ProductCreate) -> dict:
    return await dispatch(
        service.create_product,
        request,
        timeout_s=config.request_timeout_seconds(),
        label="create_product",
    )


@router.put("/products/{product_id}")
async def update_product(product_id: int, request: schemas.ProductUpdate) -> dict:
    return await dispatch(
        service.update_product,
        product_id,
        request,
        timeout_s=config.request_timeout_seconds(),
        label="update_product",
    )


@router.delete("/products/{product_id}", status_code=204)
async def delete_product(product_id: int) -> Response:
    await dispatch(
        service.delete_product,
        product_id,
        timeout_s=config.request_timeout_seconds(),
        label="delete_product",
    )
    return responses.no_content()
