"""
state/hub.py

Per-diagram-view reactive state.

A ``StateHub`` owns a fixed set of named ``Channel``s (selected diagram,
selected instance, callouts, hovered/selected callout, overlay data, widget)
so that the legend, callouts, hover highlight and instance selector can
coordinate without holding references to one another.  Each channel is a
``QObject`` whose ``changed`` signal is emitted synchronously, in
connection order, on every publish.

Values are handed out read-only: lists and tuples are frozen to tuples,
dicts are wrapped in ``MappingProxyType`` and sets become ``frozenset``.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Optional, Tuple

from PyQt6.QtCore import QObject, pyqtSignal

from debug_trace import trace, trace_exception

Subscriber = Callable[[Any], None]

# Channel name -> initial value, in declaration order
CHANNEL_DEFAULTS: Tuple[Tuple[str, Any], ...] = (
    ("selected_diagram", None),
    ("selected_instance", None),
    ("callouts", ()),
    ("hovered_callout", None),
    ("selected_callout", None),
    ("overlay_data", ()),
    ("widget", None),
)


class UnknownChannelError(KeyError):
    """The hub has no channel with the requested name."""


class HubClosedError(RuntimeError):
    """The hub (or channel) was torn down with its diagram view."""


def freeze(value: Any) -> Any:
    """Return a read-only view of *value* for handing to subscribers."""
    if isinstance(value, (list, tuple)):
        return tuple(value)
    if isinstance(value, (set, frozenset)):
        return frozenset(value)
    if isinstance(value, MappingProxyType):
        return value
    if isinstance(value, Mapping):
        return MappingProxyType(dict(value))
    return value


def channel_key(name: str) -> str:
    """Normalize ``hoveredCallout`` style names to ``hovered_callout``."""
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


class Subscription:
    """Handle returned by ``Channel.subscribe``; call it (or ``unsubscribe``)
    to stop receiving values.  Unsubscribing twice is harmless."""

    def __init__(self, channel: "Channel", connection, callback: Subscriber):
        self._channel = channel
        self._connection = connection
        self.callback = callback

    @property
    def active(self) -> bool:
        return self._connection is not None

    def unsubscribe(self) -> None:
        if self._connection is None:
            return
        self._channel.changed.disconnect(self._connection)
        self._connection = None
        self._channel._forget(self)

    __call__ = unsubscribe


class Channel(QObject):
    """One named reactive cell.

    Signals:
        changed(object): Emitted with the new (frozen) value on each publish.
    """

    changed = pyqtSignal(object)

    def __init__(self, name: str, initial: Any = None, parent: Optional[QObject] = None):
        super().__init__(parent)
        self.setObjectName(name)
        self._name = name
        self._value = freeze(initial)
        self._subscriptions: List[Subscription] = []
        self._closed = False

    def __repr__(self) -> str:
        return f"Channel({self._name!r}, {self._value!r})"

    @property
    def name(self) -> str:
        return self._name

    @property
    def value(self) -> Any:
        return self._value

    @property
    def closed(self) -> bool:
        return self._closed

    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def publish(self, value: Any) -> None:
        """Replace the value and notify subscribers in subscription order."""
        self._check_open()
        self._value = freeze(value)
        self.changed.emit(self._value)

    def update(self, fn: Callable[[Any], Any]) -> None:
        """Publish ``fn(current value)``."""
        self.publish(fn(self._value))

    def subscribe(self, callback: Subscriber) -> Subscription:
        """Register *callback*; it is called now with the current value and
        again after every publish."""
        self._check_open()
        if not callable(callback):
            raise TypeError("Subscriber must be callable")
        connection = self.changed.connect(self._guarded(callback))
        subscription = Subscription(self, connection, callback)
        self._subscriptions.append(subscription)
        try:
            callback(self._value)
        except Exception:
            subscription.unsubscribe()
            raise
        return subscription

    def close(self) -> None:
        """Disconnect every subscriber; later publish/subscribe calls fail."""
        for subscription in list(self._subscriptions):
            subscription.unsubscribe()
        self._closed = True

    def _forget(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def _check_open(self) -> None:
        if self._closed:
            raise HubClosedError(f"Channel {self._name!r} is closed")

    def _guarded(self, callback: Subscriber) -> Subscriber:
        # An exception escaping a slot aborts the Qt process; log it instead
        name = self._name

        def _deliver(value: Any) -> None:
            try:
                callback(value)
            except Exception:
                trace_exception(f"Subscriber of {name!r} failed")

        return _deliver


class StateHub:
    """The set of channels shared by the fragments of one diagram view.

    Construct one per view and ``close()`` it when the view goes away.  Each
    channel is also available as an attribute (``hub.hovered_callout``).

    Args:
        parent: Optional ``QObject`` owning the channels (the view widget).
    """

    def __init__(self, parent: Optional[QObject] = None):
        self._channels: Dict[str, Channel] = {}
        for name, initial in CHANNEL_DEFAULTS:
            channel = Channel(name, initial, parent)
            self._channels[name] = channel
            setattr(self, name, channel)
        self._closed = False

    def __enter__(self) -> "StateHub":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def __contains__(self, name: str) -> bool:
        return channel_key(name) in self._channels

    def names(self) -> List[str]:
        return list(self._channels)

    def channel(self, name: str) -> Channel:
        """Look up a channel by snake_case or camelCase name."""
        try:
            return self._channels[channel_key(name)]
        except KeyError:
            raise UnknownChannelError(name) from None

    def value(self, name: str) -> Any:
        return self.channel(name).value

    def publish(self, name: str, value: Any) -> None:
        self._check_open()
        self.channel(name).publish(value)

    def update(self, name: str, fn: Callable[[Any], Any]) -> None:
        self._check_open()
        self.channel(name).update(fn)

    def subscribe(self, name: str, callback: Subscriber) -> Subscription:
        self._check_open()
        return self.channel(name).subscribe(callback)

    def snapshot(self) -> Dict[str, Any]:
        """Current value of every channel."""
        return {name: channel.value for name, channel in self._channels.items()}

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Tear the hub down with its view."""
        if self._closed:
            return
        for channel in self._channels.values():
            channel.close()
        self._closed = True
        trace("State hub closed", "STATE")

    def _check_open(self) -> None:
        if self._closed:
            raise HubClosedError("State hub is closed")


def create_state_hub(parent: Optional[QObject] = None) -> StateHub:
    """Build the channel registry for one diagram view."""
    return StateHub(parent)
