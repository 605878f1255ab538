from typing import Dict, Iterable, List, NamedTuple, Tuple

from errors import UnknownItem

# House menu, in display order: (name, prep time in minutes)
DEFAULT_MENU = [
    ("Chicken Biryani", 20),
    ("Beef Burger", 15),
    ("Masala Fries", 10),
    ("Mint Lemonade", 5),
]


class MenuItem(NamedTuple):
    name: str
    prep_time: int


class MenuCatalog:
    """Read-only mapping of menu items to preparation time.

    Positions (the 1-based ids customers pick from) are fixed when the
    catalog is built and never recomputed.
    """

    def __init__(self, items: Iterable[Tuple[str, int]]):
        menu_items = []
        by_name = {}
        for name, prep_time in items:
            if not isinstance(prep_time, int) or prep_time <= 0:
                raise ValueError(f"Prep time for {name!r} must be a positive integer")
            if name in by_name:
                raise ValueError(f"Duplicate menu item {name!r}")
            item = MenuItem(name, prep_time)
            menu_items.append(item)
            by_name[name] = item

        self._items = tuple(menu_items)
        self._by_name = by_name
        self._by_position = {position: item for position, item in enumerate(self._items, start=1)}

    @classmethod
    def default(cls) -> "MenuCatalog":
        return cls(DEFAULT_MENU)

    def __len__(self) -> int:
        return len(self._items)

    def items_in_order(self) -> Tuple[MenuItem, ...]:
        return self._items

    def prep_duration(self, name: str) -> int:
        """Preparation time in minutes for a menu item"""
        try:
            return self._by_name[name].prep_time
        except KeyError:
            raise UnknownItem(f"No menu item named {name!r}") from None

    def item_at(self, position: int) -> MenuItem:
        """Resolve a 1-based menu position to its item"""
        try:
            return self._by_position[position]
        except (KeyError, TypeError):
            raise UnknownItem(f"No menu item at position {position!r}") from None

    def to_list(self) -> List[Dict]:
        return [
            {'id': position, 'name': item.name, 'prep_time': item.prep_time}
            for position, item in self._by_position.items()
        ]
