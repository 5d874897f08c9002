"""Shopping carts, orders with warehouse reservations, an order status outbox and notifications."""

__version__ = "0.1.0"