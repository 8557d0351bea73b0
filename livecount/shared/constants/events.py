"""
Tracking event names
"""

PAGE_VIEW = "page_view"
ADD_TO_CART = "add_to_cart"
CHECKOUT_STARTED = "checkout_started"
PURCHASE = "purchase"
PAGE_HIDE = "page_hide"
UNLOAD = "unload"

# Sent through the unload-safe delivery channel
EXIT_EVENTS = frozenset({PAGE_HIDE, UNLOAD})

__all__ = [
    "PAGE_VIEW",
    "ADD_TO_CART",
    "CHECKOUT_STARTED",
    "PURCHASE",
    "PAGE_HIDE",
    "UNLOAD",
    "EXIT_EVENTS",
]
