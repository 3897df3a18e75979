"""
Redis Channel Naming.

Station displays subscribe to their station channel; order views subscribe
to the order channel.
"""

from __future__ import annotations

from kds_shared.config.constants import DisplayStation


def _validate_positive_id(id_value: int, name: str) -> None:
    if not isinstance(id_value, int) or id_value <= 0:
        raise ValueError(f"{name} must be a positive integer, got {id_value}")


def channel_station(station: str) -> str:
    """Channel for one station display (kitchen or bar)."""
    if station not in DisplayStation.ALL:
        raise ValueError(f"Unknown station: {station}")
    return f"kds:station:{station}"


def channel_order(order_id: int) -> str:
    """Channel for order-level listeners (front of house, order tracking)."""
    _validate_positive_id(order_id, "order_id")
    return f"kds:order:{order_id}"
