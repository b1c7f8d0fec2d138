"""
Product business logic.
"""

from __future__ import annotations

import logging
from typing import Any

from core import config
from core.errors import NotFoundError

from . import repository, schemas

logger = logging.getLogger(__name__)


def _to_summary(row: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": int(row["id"]),
        "name": str(row["name"]),
        "price": float(row["price"]),
        "imageId": row["imageId"],
        "createdAt": row["createdAt"],
    }


def _to_product(row: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": int(row["id"]),
        "name": str(row["name"]),
        "description": str(row["description"]),
        "price": float(row["price"]),
        "imageId": row["imageId"],
        "createdAt": row["createdAt"],
    }


async def list_products(*, page: int = 1, limit: int = 20) -> dict:
    limit = min(limit, config.max_page_limit())
    rows = await repository.list_products(limit=limit, offset=(page - 1) * limit)
    return {
        "data": [_to_summary(row) for row in rows],
        "page": page,
        "limit": limit,
    }


async def get_product(product_id: int) -> dict:
    row = await repository.get_product(product_id)
    if row is None:
        raise NotFoundError("Product not found")

    product = _to_product(row)
    mimetype = row.get("imageMimetype")
    product["image"] = {"mimetype": mimetype} if mimetype is not None else None
    return product


async def create_product(payload: schemas.ProductCreate) -> dict:
    row = await repository.insert_product(
        name=payload.name,
        description=payload.description,
        price=payload.price,
        image_id=payload.image_id,
    )
    logger.info("Created product %s.", row["id"])
    return _to_product(row)


async def update_product(product_id: int, payload: schemas.ProductUpdate) -> dict:
    row = await repository.update_product(
        product_id,
        name=payload.name,
        description=payload.description,
        price=payload.price,
        image_id=payload.image_id,
    )
    if row is None:
        raise NotFoundError("Product not found")
    return _to_product(row)


async def delete_product(product_id: int) -> None:
    deleted = await repository.delete_product(product_id)
    if not deleted:
        raise NotFoundError("Product not found")
    logger.info("Deleted product %d.", product_id)
