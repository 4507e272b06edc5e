"""Limit order depth aggregated by price, with change tracking for publishing."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass

INVALID_LEVEL_PRICE = 0
MARKET_ORDER_BID_SORT_PRICE = 0xFFFFFFFF
MARKET_ORDER_ASK_SORT_PRICE = 0


class DepthError(RuntimeError):
    """Raised when the depth or a level is driven into an inconsistent state."""


@dataclass(eq=False)
class DepthLevel:
    """Aggregate of all orders resting at one price."""

    price: int = INVALID_LEVEL_PRICE
    order_count: int = 0
    aggregate_qty: int = 0
    is_excess: bool = False
    last_change: int = 0

    def reset(self, price: int, excess: bool) -> None:
        """Start the level afresh at a price; the change stamp is kept."""
        self.price = price
        self.order_count = 0
        self.aggregate_qty = 0
        self.is_excess = excess

    def add_order(self, qty: int) -> None:
        self.order_count += 1
        self.aggregate_qty += qty

    def increase_qty(self, qty: int) -> None:
        self.aggregate_qty += qty

    def decrease_qty(self, qty: int) -> None:
        self.aggregate_qty -= qty

    def close_order(self, qty: int) -> bool:
        """Remove one order; return True if the level is now empty."""
        if self.order_count == 0:
            raise DepthError("close_order: order count too low")
        if self.order_count == 1:
            self.order_count = 0
            self.aggregate_qty = 0
            return True
        if self.aggregate_qty < qty:
            raise DepthError("close_order: level quantity too low")
        self.order_count -= 1
        self.aggregate_qty -= qty
        return False

    def changed_since(self, change_id: int) -> bool:
        return self.last_change > change_id

    def copy(self) -> "DepthLevel":
        """Return an independent copy of this level."""
        return dataclasses.replace(self)

    def _assign(self, other: "DepthLevel") -> None:
        # Visibility belongs to the slot, so is_excess is never taken over.
        self.price = other.price
        self.order_count = other.order_count
        self.aggregate_qty = other.aggregate_qty
        if other.price != INVALID_LEVEL_PRICE:
            self.last_change = other.last_change


class Depth:
    """A fixed number of visible price levels per side, plus excess levels."""

    def __init__(self, size: int = 5) -> None:
        if size < 1:
            raise ValueError("Depth size less than one not allowed")
        self._size = size
        self._levels = [DepthLevel() for _ in range(size * 2)]
        self._last_change = 0
        self._last_published_change = 0
        self._ignore_bid_fill_qty = 0
        self._ignore_ask_fill_qty = 0
        self._excess_bids: dict[int, DepthLevel] = {}
        self._excess_asks: dict[int, DepthLevel] = {}

    @property
    def size(self) -> int:
        return self._size

    def bids(self) -> list[DepthLevel]:
        """Visible bid levels, best first."""
        return self._levels[: self._size]

    def asks(self) -> list[DepthLevel]:
        """Visible ask levels, best first."""
        return self._levels[self._size :]

    def last_bid_level(self) -> DepthLevel:
        return self._levels[self._size - 1]

    def last_ask_level(self) -> DepthLevel:
        return self._levels[-1]

    def add_order(self, price: int, qty: int, is_bid: bool) -> None:
        stamp = self._last_change + 1
        found = self._find_level(price, is_bid)
        if found is None:
            return
        level, _ = found
        level.add_order(qty)
        if not level.is_excess:
            self._last_change = stamp
            level.last_change = stamp

    def ignore_fill_qty(self, qty: int, is_bid: bool) -> None:
        """Ignore future fills of this quantity on one side."""
        if is_bid:
            if self._ignore_bid_fill_qty:
                raise DepthError("Unexpected ignore_bid_fill_qty")
            self._ignore_bid_fill_qty = qty
        else:
            if self._ignore_ask_fill_qty:
                raise DepthError("Unexpected ignore_ask_fill_qty")
            self._ignore_ask_fill_qty = qty

    def fill_order(self, price: int, fill_qty: int, filled: bool, is_bid: bool) -> None:
        if is_bid and self._ignore_bid_fill_qty:
            self._ignore_bid_fill_qty -= fill_qty
        elif not is_bid and self._ignore_ask_fill_qty:
            self._ignore_ask_fill_qty -= fill_qty
        elif filled:
            self.close_order(price, fill_qty, is_bid)
        else:
            self.change_qty_order(price, -fill_qty, is_bid)

    def close_order(self, price: int, open_qty: int, is_bid: bool) -> bool:
        """Cancel or fill an order; return True if a visible level was erased."""
        found = self._find_level(price, is_bid, create=False)
        if found is None:
            return False
        level, index = found
        if level.close_order(open_qty):
            self._erase_level(level, index, is_bid)
            return True
        self._last_change += 1
        level.last_change = self._last_change
        return False

    def change_qty_order(self, price: int, qty_delta: int, is_bid: bool) -> None:
        found = self._find_level(price, is_bid, create=False)
        if found is None or not qty_delta:
            return
        level, _ = found
        if qty_delta > 0:
            level.increase_qty(qty_delta)
        else:
            level.decrease_qty(-qty_delta)
        self._last_change += 1
        level.last_change = self._last_change

    def replace_order(
        self,
        current_price: int,
        new_price: int,
        current_qty: int,
        new_qty: int,
        is_bid: bool,
    ) -> bool:
        """Move an order's quantity; return True if a visible level was erased."""
        if current_price == new_price:
            self.change_qty_order(current_price, new_qty - current_qty, is_bid)
            return False
        self.add_order(new_price, new_qty, is_bid)
        return self.close_order(current_price, current_qty, is_bid)

    def needs_bid_restoration(self) -> int | None:
        """Price to restore bids after, or None if no restoration is needed."""
        if self._size == 1:
            return MARKET_ORDER_BID_SORT_PRICE
        price = self._levels[self._size - 2].price
        return None if price == INVALID_LEVEL_PRICE else price

    def needs_ask_restoration(self) -> int | None:
        """Price to restore asks after, or None if no restoration is needed."""
        if self._size == 1:
            return MARKET_ORDER_ASK_SORT_PRICE
        price = self._levels[-2].price
        return None if price == INVALID_LEVEL_PRICE else price

    def changed(self) -> bool:
        return self._last_change > self._last_published_change

    def last_change(self) -> int:
        return self._last_change

    def last_published_change(self) -> int:
        return self._last_published_change

    def published(self) -> None:
        self._last_published_change = self._last_change

    def _side_range(self, is_bid: bool) -> range:
        return range(0, self._size) if is_bid else range(self._size, self._size * 2)

    def _excess(self, is_bid: bool) -> dict[int, DepthLevel]:
        return self._excess_bids if is_bid else self._excess_asks

    def _find_level(
        self, price: int, is_bid: bool, create: bool = True
    ) -> tuple[DepthLevel, int | None] | None:
        for index in self._side_range(is_bid):
            level = self._levels[index]
            if level.price == price:
                return level, index
            if not create:
                continue
            if level.price == INVALID_LEVEL_PRICE:
                level.reset(price, False)
                return level, index
            worse = level.price < price if is_bid else level.price > price
            if worse:
                self._insert_level_before(index, is_bid, price)
                return self._levels[index], index
        excess = self._excess(is_bid)
        level = excess.get(price)
        if level is None and create:
            level = DepthLevel()
            level.reset(price, True)
            excess[price] = level
        return None if level is None else (level, None)

    def _insert_level_before(self, index: int, is_bid: bool, price: int) -> None:
        side = self._side_range(is_bid)
        last = side[-1]
        last_level = self._levels[last]
        if last_level.price != INVALID_LEVEL_PRICE:
            pushed = DepthLevel(is_excess=True)
            pushed._assign(last_level)
            self._excess(is_bid).setdefault(last_level.price, pushed)
        self._last_change += 1
        for current in range(last - 1, index - 1, -1):
            source = self._levels[current]
            target = self._levels[current + 1]
            target._assign(source)
            if source.price != INVALID_LEVEL_PRICE:
                target.last_change = self._last_change
        self._levels[index].reset(price, False)

    def _erase_level(self, level: DepthLevel, index: int | None, is_bid: bool) -> None:
        if level.is_excess or index is None:
            self._excess(is_bid).pop(level.price, None)
            return
        last = self._side_range(is_bid)[-1]
        self._last_change += 1
        for current in range(index, last):
            slot = self._levels[current]
            if slot.price != INVALID_LEVEL_PRICE or current == index:
                slot._assign(self._levels[current + 1])
                slot.last_change = self._last_change
        last_level = self._levels[last]
        if index == last or last_level.price != INVALID_LEVEL_PRICE:
            excess = self._excess(is_bid)
            if excess:
                best = max(excess) if is_bid else min(excess)
                last_level._assign(excess.pop(best))
            else:
                last_level.reset(INVALID_LEVEL_PRICE, False)
            last_level.last_change = self._last_change