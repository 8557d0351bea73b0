from .presence import HeartbeatMessage, PresenceSnapshot, validate_shop_value

__all__ = ["HeartbeatMessage", "PresenceSnapshot", "validate_shop_value"]
