"""Update broadcaster."""

from lexsync.broadcast.broadcaster import (
    EVENT_NAME,
    Broadcaster,
    Channel,
    ChannelClosed,
    ContentEvent,
)

__all__ = ["EVENT_NAME", "Broadcaster", "Channel", "ChannelClosed", "ContentEvent"]
