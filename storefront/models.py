from datetime import datetime, timezone
from typing import List
from pydantic import BaseModel, Field, field_validator

from storefront.schemas import CartEntry


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CartDocument(BaseModel):
    items: List[CartEntry] = []
    updated_at: datetime = Field(default_factory=utcnow, alias="updatedAt")

    class Config:
        populate_by_name = True

    @field_validator("items")
    def one_entry_per_product(cls, v):
        # Merge duplicates left behind by older snapshots
        merged = {}
        for entry in v:
            if entry.product_id in merged:
                merged[entry.product_id].quantity += entry.quantity
            else:
                merged[entry.product_id] = entry
        return list(merged.values())
