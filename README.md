# cartorder

A library for an online shop's order flow, in three parts:

- **checkout**: users' shopping carts. An item is added only when the
  warehouses hold enough stock; removing never takes a count below zero;
  listing fills in product names and prices and totals the cart; purchasing
  turns the cart into an order and clears the cart.
- **loms** (logistics and order management): orders and warehouse stock.
  Creating an order reserves its items across warehouses, best-stocked
  warehouse first; an order the stock cannot cover is marked failed. Orders
  can then be paid or cancelled, and every status change is written to an
  outbox for publication.
- **notifications**: decodes order status messages and logs each change.

Storage uses `sqlite3` connections. The only third-party dependency is
PyYAML, used for configuration files.

## Modules

| Module | What it holds |
| --- | --- |
| `cartorder.checkout_models` | `Item`, `CartInfo`, `CreateOrderItem`, `Product`, `Stock` |
| `cartorder.loms_models` | `OrderStatus`, `SendStatus`, `OrderData`, `OrderInfo`, `OutboxOrder`, `ErrOrder`, `OrderTimestamp`, `Item`, `Stock` |
| `cartorder.config` | `load_checkout_config`, `load_loms_config`, `CheckoutConfig`, `LomsConfig`, `ConfigError` |
| `cartorder.limiter` | `Limiter`, a fixed-rate limiter, and the `limit_interceptor` decorator |
| `cartorder.product_info` | `ProductInfoGetter`, which fills cart items with product data using a thread pool |
| `cartorder.cancel_pool` | `CancelWorkerPool`, which cancels orders left unpaid for longer than ten minutes |
| `cartorder.checkout_service` | `CheckoutService` and its errors `CheckoutError`, `InsufficientStocksError`, `PurchaseError` |
| `cartorder.checkout_api` | `CheckoutHandler`, its messages (`ProductInfo`, `CartItemMessage`, `ListCartResponse`, `PurchaseResponse`) and `RequestError` |
| `cartorder.checkout_repository` | `CheckoutRepository`, cart storage, and `RepositoryError` |
| `cartorder.loms_service` | `LomsService` and its errors `LomsError`, `WrongStatusError` |
| `cartorder.loms_api` | `LomsHandler`, its messages, `to_status_message`, `to_stocks_message`, `RequestError` |
| `cartorder.loms_repository` | `LomsRepository`, order and stock storage, and `LomsRepositoryError` |
| `cartorder.loms_outbox` | `OutboxRepository`, `save_in_outbox` and `OutboxError` |
| `cartorder.sender` | `OrderSender`, which batches outbox records into `ProducerMessage`s |
| `cartorder.notifications` | `Order` and `Consumer` for incoming status messages |

## Example

```python
import sqlite3

from cartorder.loms_models import Item, OrderData, OrderStatus
from cartorder.loms_repository import LomsRepository
from cartorder.loms_service import LomsService

repository = LomsRepository(sqlite3.connect(":memory:"))
repository.create_schema()
repository.add_warehouse_items(warehouse_id=1, sku=100, available=5)

service = LomsService(repository)
order_id = service.create_order(OrderData(user=7, items=[Item(sku=100, count=3)]))

assert service.list_order(order_id).status is OrderStatus.AWAITING_PAYMENT
print(repository.stocks(100))  # [Stock(warehouse_id=1, count=2)]
```

## Carts

`CheckoutService` is built from a stock checker, an order creator, a product
info getter and a repository, each any object with the methods it calls.
`add_to_cart` raises `InsufficientStocksError` when the warehouses together
hold fewer units than asked for. `list_cart` returns a `CartInfo` whose
`total_price` is the sum of price times count, kept to 32 bits. `purchase`
returns the new order id; if the order was created but the cart could not be
cleared it raises `PurchaseError` carrying that `order_id`, and
`CheckoutHandler.purchase` then still answers with the order id.

`CheckoutRepository` stores carts in the `carts` and `cart_items` tables
(`create_schema` creates them). `clear_cart` raises `RepositoryError` for a
user without a cart.

## Order lifecycle

An order moves through the statuses of `OrderStatus`:

1. **New**: stored by `LomsRepository.create_order`.
2. **Awaiting payment**: `reserved_items` reserved every item.
   **Failed**: the stock could not cover an item; nothing is reserved.
3. **Payed**: `LomsService.order_payed` moves reserved units to bought.
   Allowed only from *awaiting payment*.
4. **Cancelled**: `LomsService.cancel_order` returns reserved units to
   available stock. Allowed only from *new* or *awaiting payment*.

A transition that is not allowed raises `WrongStatusError`.
`OrderStatus.display_name` gives a readable name such as "Awaiting payment".

`CancelWorkerPool` takes `OrderTimestamp`s (for instance from
`LomsRepository.get_awaiting_payment_orders`), cancels those older than the
payment window, and returns the collected cancellation errors from `close`.

## Outbox delivery

Each status change writes a row to `outbox_orders`.
`OutboxRepository.get_outbox_orders` returns the open rows in id order and
marks them in progress. `OrderSender.run_once` sends them through a producer
(any object with `send_messages`) in batches of the configured size, closes
the rows that were sent, records the error message of each that was not, and
returns both lists. `OrderSender.run` repeats this in a background thread
every `interval` seconds until `OrderSender.stop`. Each message body is
`OutboxOrder.to_json` and its key is the order id.

On the receiving side, `Order.from_json` decodes a message body and
`Consumer.consume_claim` logs "Order: <id>. New status: <name>" for each
message and marks it on the session. A message that cannot be decoded is
logged and left unmarked; consumption stops once the session's `done` event
is set.

## Configuration

`load_checkout_config` reads a YAML file (by default `config.yml`) with
`token`, `services.loms`, `services.product_service` and `postgres.url`.
`load_loms_config` reads `postgres.url`. Missing keys become empty strings; a
file that cannot be read or is not valid YAML raises `ConfigError`.

## Rate limiting

`Limiter(n)` hands out one permit per tick, `n` ticks a second.
`Limiter.wait(timeout)` blocks until a permit is free or raises
`TimeoutError`; after `close` it returns at once. `limit_interceptor(limiter,
timeout=3.0)` decorates a function so that every call first waits on the
limiter.

## What this package does not do

It provides no servers, command-line programs or network clients. There is
no RPC service exposing the handlers, no client for the product catalogue or
for the order service, and no message-broker producer or consumer; those are
passed in as objects with the methods the classes call. Storage is built for
`sqlite3` connections only.