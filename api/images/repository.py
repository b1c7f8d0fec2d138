"""
Image persistence (raw SQL).

Metadata and payload live in one row; the payload is never returned from
inserts.
"""

from __future__ import annotations

from core import db


async def insert_image(*, filename: str, mimetype: str, data: bytes) -> int:
    row = await db.fetch_one(
        """
        INSERT INTO images (filename, mimetype, data)
        VALUES ($1, $2, $3)
        RETURNING id
        """,
        filename,
        mimetype,
        data,
    )
    if row is None or "id" not in row:
        raise RuntimeError("Failed to insert image.")
    return int(row["id"])


async def get_image(image_id: int) -> dict | None:
    return await db.fetch_one(
        """
        SELECT id, filename, mimetype, data
        FROM images
        WHERE id = $1
        """,
        image_id,
    )


async def delete_image(image_id: int) -> bool:
    row = await db.fetch_one(
        """
        DELETE FROM images
        WHERE id = $1
        RETURNING id
        """,
        image_id,
    )
    return row is not None
