"""Shared payloads and headers for service tests."""

TOMATO_LINE = {
    "product_id": "tomato", "name": "Tomatoes", "unit_price": 85.0,
    "quantity": 2, "max_stock": 10, "category": "vegetables", "unit": "kg",
}
LETTUCE_LINE = {
    "product_id": "lettuce", "name": "Lettuce", "unit_price": 120.0,
    "quantity": 1, "max_stock": 5, "category": "vegetables", "unit": "head",
}


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
