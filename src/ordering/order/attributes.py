"""Attribute add-ons selected for an order line (e.g. "Extra cheese").

A line may carry several attribute groups, each with one or more selected
items. Every item adds ``unit_price * quantity`` to the price of a single unit
of the line; the line total multiplies that by the line quantity.

Selections are stored on the OrderLine as a JSON array.
"""

import json
from dataclasses import dataclass, field

from protean.exceptions import ValidationError


@dataclass(frozen=True)
class AttributeItem:
    item_id: str
    name: str
    unit_price: float = 0.0
    quantity: int = 1

    @property
    def total(self) -> float:
        return self.unit_price * self.quantity

    def to_dict(self) -> dict:
        return {
            "item_id": self.item_id,
            "name": self.name,
            "unit_price": self.unit_price,
            "quantity": self.quantity,
        }


@dataclass(frozen=True)
class SelectedAttribute:
    attribute_id: str
    name: str
    type: str = "single"
    items: tuple[AttributeItem, ...] = field(default_factory=tuple)

    @property
    def unit_total(self) -> float:
        return sum(item.total for item in self.items)

    def to_dict(self) -> dict:
        return {
            "attribute_id": self.attribute_id,
            "name": self.name,
            "type": self.type,
            "items": [item.to_dict() for item in self.items],
        }


def _item_from_dict(data: dict) -> AttributeItem:
    try:
        unit_price = float(data.get("unit_price", 0.0) or 0.0)
        quantity = int(data.get("quantity", 1))
    except (TypeError, ValueError) as exc:
        raise ValidationError({"attributes": ["Attribute item price and quantity must be numeric"]}) from exc

    if unit_price < 0 or quantity < 1:
        raise ValidationError({"attributes": ["Attribute items need a non-negative price and a quantity of at least 1"]})

    return AttributeItem(
        item_id=str(data.get("item_id") or data.get("id") or ""),
        name=data.get("name", ""),
        unit_price=unit_price,
        quantity=quantity,
    )


def attribute_from_dict(data: dict) -> SelectedAttribute:
    if not isinstance(data, dict):
        raise ValidationError({"attributes": ["Each attribute must be an object"]})
    return SelectedAttribute(
        attribute_id=str(data.get("attribute_id") or data.get("id") or ""),
        name=data.get("name", ""),
        type=data.get("type", "single"),
        items=tuple(_item_from_dict(item) for item in data.get("items") or ()),
    )


def parse_attributes(raw) -> tuple[SelectedAttribute, ...]:
    """Accept a list of dicts, SelectedAttribute values, or ``None``."""
    if not raw:
        return ()
    if not isinstance(raw, (list, tuple)):
        raise ValidationError({"attributes": ["Attributes must be a list"]})
    return tuple(a if isinstance(a, SelectedAttribute) else attribute_from_dict(a) for a in raw)


def attribute_unit_total(attributes) -> float:
    return round(sum(attribute.unit_total for attribute in attributes), 2)


def attributes_to_json(attributes) -> str:
    return json.dumps([attribute.to_dict() for attribute in attributes])


def attributes_from_json(value: str | None) -> tuple[SelectedAttribute, ...]:
    if not value:
        return ()
    return parse_attributes(json.loads(value))
