"""
Table QR codes.

A table stores the customer landing URL its QR code points at. The image
itself is rendered by an external service addressed by that URL.
"""

from typing import Optional
from urllib.parse import quote

from restro.core.config import Settings, get_settings
from restro.models import Table
from restro.schemas import TableResponse


def table_target_url(restaurant_id: str, table_id: int, settings: Optional[Settings] = None) -> str:
    settings = settings or get_settings()
    return f"{settings.public_base_url}/customer/login/{restaurant_id}/{table_id}"


def qr_image_url(target_url: str, settings: Optional[Settings] = None) -> str:
    settings = settings or get_settings()
    size = settings.qr_image_size
    return f"{settings.qr_image_service_url}?size={size}x{size}&data={quote(target_url, safe='')}"


def table_response(table: Table) -> TableResponse:
    response = TableResponse.model_validate(table)
    response.qr_image_url = qr_image_url(table.qr_code_url)
    return response
