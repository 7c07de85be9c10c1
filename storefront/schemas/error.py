# storefront/schemas/error.py
from typing import Any

from sqlmodel import SQLModel


class ErrorResponse(SQLModel):
    """
    Body of every business failure response:

        {"detail": {"code": "insufficient_stock", "message": "...", ...}}

    Extra keys depend on the error (product_id, available, ...).
    """

    detail: dict[str, Any]
