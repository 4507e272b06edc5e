# pricedepth

Aggregated market depth for a limit order book.

`pricedepth` keeps the best N price levels on each side of a book (bids
sorted high to low, asks low to high), with the order count and total open
quantity at each level. Levels that fall beyond the visible depth are kept
aside as "excess" levels, and the best of them moves into view when a
visible level is erased. Every visible change is stamped with an increasing
change id, so a publisher can tell which levels changed since it last sent
an update.

## Installation

```
pip install pricedepth
```

## Usage

Everything lives in `pricedepth.depth`.

```python
from pricedepth.depth import Depth

depth = Depth(5)                    # 5 visible levels per side (the default)

depth.add_order(1236, 300, True)    # bid
depth.add_order(1235, 200, True)
depth.add_order(1235, 400, True)
depth.add_order(1240, 100, False)   # ask

best_bid = depth.bids()[0]
print(best_bid.price, best_bid.order_count, best_bid.aggregate_qty)
# 1236 1 300

depth.change_qty_order(1235, -50, True)   # reduce open quantity at a level
depth.close_order(1236, 300, True)        # last order at 1236 leaves: returns True

depth.replace_order(1235, 1237, 200, 200, True)  # move an order to a new price
```

`bids()` and `asks()` return the visible `DepthLevel` objects of each side,
best first; `last_bid_level()` and `last_ask_level()` return the worst
visible level of a side. An unused slot has price `0`
(`INVALID_LEVEL_PRICE`). `Depth.size` is the number of visible levels per
side; a size below one raises `ValueError`.

A `DepthLevel` has the fields `price`, `order_count`, `aggregate_qty`,
`is_excess` and `last_change`, and the methods `reset`, `add_order`,
`increase_qty`, `decrease_qty`, `close_order`, `changed_since` and `copy`.

`close_order` and `replace_order` return `True` when a visible level was
erased. Closing an order on a level that has none raises `DepthError`.

### Change tracking

```python
since = depth.last_change()
depth.add_order(1239, 100, False)

changed = [level.changed_since(since) for level in depth.asks()]

if depth.changed():
    # publish the levels, then record that they were sent
    depth.published()
```

`last_change()` and `last_published_change()` expose the counters;
`changed()` is true when there are unpublished changes. Changes to excess
levels are not stamped.

### Fills

`fill_order(price, fill_qty, filled, is_bid)` reduces a level by a partial
fill, or closes the order when `filled` is true. When an order matched at the
moment it was accepted, call `ignore_fill_qty(qty, is_bid)` first so that the
fills it produces are not applied to the depth twice. Setting an ignore
quantity on a side that still has one outstanding raises `DepthError`.

### Restoration

After a visible level is erased, `needs_bid_restoration()` and
`needs_ask_restoration()` return the price after which the last level should
be repopulated from the full book, or `None` when no restoration is needed.
With a depth of one level they always return the market-order sort price of
the side (`MARKET_ORDER_BID_SORT_PRICE` or `MARKET_ORDER_ASK_SORT_PRICE`).

## What this package does not do

`pricedepth` only tracks aggregated depth. It does not hold individual
orders, match them, produce trades, or notify listeners; the code that runs
the order book calls these methods as orders are added, filled, changed and
cancelled, and decides when to publish.

## Running the tests

```
pip install -e ".[test]"
pytest
```