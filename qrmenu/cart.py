"""
Cart Aggregation

A cart is an ordered list of lines. A line is identified by the menu item
and the exact option set chosen for it, so the same noodle dish ordered
"pedas" and "tidak pedas" lives on two lines while ordering it twice with the
same options bumps one line's quantity.

The same Cart class backs the customer menu page, the cashier's take-away
form and the edit-order form on the dashboard.

Totals are always folded from the lines; nothing caches them.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Optional

from qrmenu.core.exceptions import MissingSelectionError, ValidationError
from qrmenu.schemas import MenuItem

logger = logging.getLogger(__name__)

SPICINESS_LEVELS = ("", "tidak pedas", "pedas sedang", "pedas")
TEMPERATURE_LEVELS = ("", "dingin", "tidak dingin")

# The cashier form historically offered a shorter label for the middle level.
_SPICINESS_ALIASES = {"sedang": "pedas sedang"}

OPTION_FIELDS = {
    "spiciness": SPICINESS_LEVELS,
    "temperature": TEMPERATURE_LEVELS,
}


@dataclass(frozen=True)
class OptionSet:
    """Spiciness/temperature chosen for a line. Empty string means none."""
    spiciness: str = ""
    temperature: str = ""

    @classmethod
    def from_levels(
        cls,
        spiciness: Optional[str],
        temperature: Optional[str],
    ) -> "OptionSet":
        """Build from the backend's nullable ``*_level`` fields."""
        return cls(spiciness=spiciness or "", temperature=temperature or "")

    def to_levels(self) -> tuple[Optional[str], Optional[str]]:
        """Empty selections serialize as None, never as a boolean."""
        return (self.spiciness or None, self.temperature or None)

    def to_dict(self) -> dict[str, str]:
        return {"spiciness": self.spiciness, "temperature": self.temperature}


def canonical_option(option: str, value: Optional[str]) -> str:
    """
    Normalize a submitted option value.

    Raises:
        ValidationError: unknown option field or value outside its enumeration
    """
    if option not in OPTION_FIELDS:
        raise ValidationError(f"Unknown option '{option}'")

    normalized = (value or "").strip().lower()
    if option == "spiciness":
        normalized = _SPICINESS_ALIASES.get(normalized, normalized)

    if normalized not in OPTION_FIELDS[option]:
        allowed = ", ".join(v for v in OPTION_FIELDS[option] if v)
        raise ValidationError(f"Invalid {option} '{value}'. Options: {allowed}")
    return normalized


def required_option(category: Optional[str]) -> Optional[str]:
    """Return the option a category forces the customer to choose, if any."""
    if not category:
        return None
    if category.startswith("menu mie"):
        return "spiciness"
    if category.startswith("minuman"):
        return "temperature"
    return None


@dataclass
class CartLine:
    menu_item_id: int
    name: str
    price: int
    quantity: int
    options: OptionSet = field(default_factory=OptionSet)

    @property
    def subtotal(self) -> int:
        return self.price * self.quantity

    def matches(self, menu_item_id: int, options: OptionSet) -> bool:
        return (
            self.menu_item_id == menu_item_id
            and self.options.spiciness == options.spiciness
            and self.options.temperature == options.temperature
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "menu_item_id": self.menu_item_id,
            "name": self.name,
            "price": self.price,
            "quantity": self.quantity,
            "options": self.options.to_dict(),
            "subtotal": self.subtotal,
        }


class Cart:
    """Ordered cart lines keyed by (menu item, option set)."""

    def __init__(self, lines: Optional[Iterable[CartLine]] = None):
        self._lines: list[CartLine] = list(lines or [])

    @classmethod
    def from_order_items(cls, items: Iterable[Any]) -> "Cart":
        """
        Seed a cart from the items of a placed order.

        Each line keeps the price the order was placed at. Items that share
        a key are merged so the uniqueness invariant holds even if the
        backend stored duplicates.
        """
        cart = cls()
        for item in items:
            quantity = int(item.quantity or 0)
            if quantity <= 0:
                continue
            options = OptionSet.from_levels(item.spiciness_level, item.temperature_level)
            existing = cart.find_line(item.menu_item_id, options)
            if existing:
                existing.quantity += quantity
                continue
            cart._lines.append(CartLine(
                menu_item_id=item.menu_item_id,
                name=item.menu_name or "Unknown Item",
                price=item.price_at_order or 0,
                quantity=quantity,
                options=options,
            ))
        return cart

    @property
    def lines(self) -> tuple[CartLine, ...]:
        return tuple(self._lines)

    @property
    def is_empty(self) -> bool:
        return not self._lines

    def __iter__(self) -> Iterator[CartLine]:
        return iter(self._lines)

    def __len__(self) -> int:
        return len(self._lines)

    def find_line(self, menu_item_id: int, options: OptionSet) -> Optional[CartLine]:
        for line in self._lines:
            if line.matches(menu_item_id, options):
                return line
        return None

    def add_line(self, item: MenuItem, options: OptionSet) -> CartLine:
        """
        Add one unit of ``item`` with ``options``.

        Raises:
            MissingSelectionError: the item's category requires an option
                that is empty. The cart is left unchanged.
        """
        required = required_option(item.category)
        if required and not getattr(options, required):
            raise MissingSelectionError(item.name, required)

        line = self.find_line(item.id_menu, options)
        if line:
            line.quantity += 1
            return line

        line = CartLine(
            menu_item_id=item.id_menu,
            name=item.name,
            price=item.price,
            quantity=1,
            options=options,
        )
        self._lines.append(line)
        logger.debug(f"Cart: new line {item.id_menu} {options}")
        return line

    def remove_line(self, menu_item_id: int, options: OptionSet) -> Optional[CartLine]:
        """Take one unit off a line; the line disappears at zero."""
        line = self.find_line(menu_item_id, options)
        if line is None:
            return None
        if line.quantity > 1:
            line.quantity -= 1
            return line
        self._lines.remove(line)
        return None

    def delete_line(self, menu_item_id: int, options: OptionSet) -> None:
        line = self.find_line(menu_item_id, options)
        if line is not None:
            self._lines.remove(line)

    def clear(self) -> None:
        self._lines.clear()

    def total_items(self) -> int:
        return sum(line.quantity for line in self._lines)

    def total_price(self) -> int:
        return sum(line.price * line.quantity for line in self._lines)

    def to_dict(self) -> dict[str, Any]:
        return {
            "lines": [line.to_dict() for line in self._lines],
            "total_items": self.total_items(),
            "total_price": self.total_price(),
        }


class Selections:
    """Option choices made on the menu before an item is added to the cart."""

    def __init__(self):
        self._choices: dict[int, OptionSet] = {}

    def get(self, menu_item_id: int) -> OptionSet:
        return self._choices.get(menu_item_id, OptionSet())

    def select(self, menu_item_id: int, option: str, value: Optional[str]) -> OptionSet:
        current = self.get(menu_item_id)
        chosen = canonical_option(option, value)
        if option == "spiciness":
            updated = OptionSet(spiciness=chosen, temperature=current.temperature)
        else:
            updated = OptionSet(spiciness=current.spiciness, temperature=chosen)
        self._choices[menu_item_id] = updated
        return updated

    def seed(self, menu_item_id: int, options: OptionSet) -> None:
        self._choices[menu_item_id] = options

    def reset(self) -> None:
        self._choices.clear()

    def to_dict(self) -> dict[int, dict[str, str]]:
        return {item_id: opts.to_dict() for item_id, opts in self._choices.items()}
