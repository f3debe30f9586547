"""JSON rendering of stored documents."""

from __future__ import annotations

from typing import Any

from bson import ObjectId
from fastapi.encoders import jsonable_encoder


def to_json_document(payload: Any) -> Any:
    """Render stored values (ObjectId, datetime) the way clients see them."""

    return jsonable_encoder(payload, custom_encoder={ObjectId: str})
