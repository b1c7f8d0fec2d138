"""
Product persistence (raw SQL).

Columns are snake_case; rows come back with the camelCase keys the API
exposes (`imageId`, `createdAt`).
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from core import db

_PRODUCT_COLUMNS = """
    id, name, description, price,
    image_id AS "imageId",
    created_at AS "createdAt"
"""


async def list_products(*, limit: int, offset: int) -> list[dict[str, Any]]:
    """
    Newest first; `id` breaks ties between rows created in the same instant.
    """
    return await db.fetch_all(
        """
        SELECT id, name, price, image_id AS "imageId", created_at AS "createdAt"
        FROM products
        ORDER BY created_at DESC, id DESC
        LIMIT $1
        OFFSET $2
        """,
        limit,
        offset,
    )


async def get_product(product_id: int) -> dict[str, Any] | None:
    return await db.fetch_one(
        """
        SELECT
          p.id,
          p.name,
          p.description,
          p.price,
          p.image_id AS "imageId",
          p.created_at AS "createdAt",
          i.mimetype AS "imageMimetype"
        FROM products p
        LEFT JOIN images i ON i.id = p.image_id
        WHERE p.id = $1
        """,
        product_id,
    )


async def insert_product(
    *,
    name: str,
    description: str,
    price: Decimal,
    image_id: int,
) -> dict[str, Any]:
    row = await db.fetch_one(
        f"""
        INSERT INTO products (name, description, price, image_id)
        VALUES ($1, $2, $3, $4)
        RETURNING {_PRODUCT_COLUMNS}
        """,
        name,
        description,
        price,
        image_id,
    )
    if row is None:
        raise RuntimeError("Failed to insert product.")
    return row


async def update_product(
    product_id: int,
    *,
    name: str | None = None,
    description: str | None = None,
    price: Decimal | None = None,
    image_id: int | None = None,
) -> dict[str, Any] | None:
    """
    Sparse update in one round trip. None means "keep the stored value".
    Returns the updated row, or None when the product does not exist.
    """
    return await db.fetch_one(
        f"""
        UPDATE products
        SET name = COALESCE($2, name),
            description = COALESCE($3, description),
            price = COALESCE($4, price),
            image_id = COALESCE($5, image_id)
        WHERE id = $1
        RETURNING {_PRODUCT_COLUMNS}
        """,
        product_id,
        name,
        description,
        price,
        image_id,
    )


async def delete_product(product_id: int) -> bool:
    row = await db.fetch_one(
        """
        DELETE FROM products
        WHERE id = $1
        RETURNING id
        """,
        product_id,
    )
    return row is not None
