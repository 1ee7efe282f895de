"""
state package

Per-view reactive channels shared by the overlay UI fragments.
"""

from state.hub import (
    Channel,
    HubClosedError,
    StateHub,
    Subscription,
    UnknownChannelError,
    create_state_hub,
)

__all__ = [
    "Channel",
    "HubClosedError",
    "StateHub",
    "Subscription",
    "UnknownChannelError",
    "create_state_hub",
]
