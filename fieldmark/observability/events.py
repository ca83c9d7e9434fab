"""Template lifecycle events and the recorder that fans them out to observers.

Recorders form a tree: :meth:`EventRecorder.scoped` returns a child whose
``service`` name is extended with a dotted suffix. Every recorder in a tree
shares one :class:`_ObserverHub`, so an observer registered anywhere sees the
events recorded everywhere, and switching ``enabled`` off silences the tree.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Collection, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import RLock
from typing import Any, Dict, FrozenSet, Iterator, List, Optional, Tuple

Payload = Dict[str, Any]
EventObserver = Callable[["TemplateEvent"], None]

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class TemplateEvent:
    """Something that happened to a template or to the metadata index."""

    timestamp: datetime
    service: str
    name: str
    payload: Payload = field(default_factory=dict)

    @property
    def template_id(self) -> Optional[str]:
        return self.payload.get("template_id")


@dataclass(slots=True)
class _Subscription:
    observer: EventObserver
    names: Optional[FrozenSet[str]] = None

    def wants(self, event: TemplateEvent) -> bool:
        return self.names is None or event.name in self.names


class _ObserverHub:
    """Observer list and on/off switch shared by a tree of recorders."""

    __slots__ = ("subscriptions", "lock", "enabled")

    def __init__(self) -> None:
        self.subscriptions: List[_Subscription] = []
        self.lock = RLock()
        self.enabled = True

    def find(self, observer: EventObserver) -> Optional[_Subscription]:
        for subscription in self.subscriptions:
            if subscription.observer == observer:
                return subscription
        return None


def _service_parts(service: Sequence[str] | str | None) -> Tuple[str, ...]:
    if not service:
        return ()
    if isinstance(service, str):
        service = service.split(".")
    return tuple(part for part in service if part)


class EventRecorder:
    """Record template events under a dotted service name."""

    __slots__ = ("_parts", "_hub")

    def __init__(
        self,
        service: Sequence[str] | str | None = None,
        *,
        parent: "EventRecorder" | None = None,
    ) -> None:
        if parent is None:
            self._hub = _ObserverHub()
            self._parts = _service_parts(service)
        else:
            self._hub = parent._hub
            self._parts = parent._parts + _service_parts(service)

    @property
    def service(self) -> str:
        return ".".join(self._parts)

    @property
    def enabled(self) -> bool:
        return self._hub.enabled

    @enabled.setter
    def enabled(self, value: bool) -> None:
        self._hub.enabled = value

    def scoped(self, service: Sequence[str] | str) -> "EventRecorder":
        return EventRecorder(service, parent=self)

    def register(
        self,
        observer: EventObserver,
        names: Collection[str] | None = None,
    ) -> None:
        """Subscribe ``observer``; with ``names`` it only receives those events.

        Registering an observer twice keeps a single subscription.
        """
        wanted = frozenset(names) if names is not None else None
        with self._hub.lock:
            existing = self._hub.find(observer)
            if existing is None:
                self._hub.subscriptions.append(_Subscription(observer, wanted))
            else:
                existing.names = wanted

    def unregister(self, observer: EventObserver) -> None:
        with self._hub.lock:
            existing = self._hub.find(observer)
            if existing is not None:
                self._hub.subscriptions.remove(existing)

    @contextmanager
    def temporary_observer(
        self,
        observer: EventObserver,
        names: Collection[str] | None = None,
    ) -> Iterator[None]:
        self.register(observer, names)
        try:
            yield
        finally:
            self.unregister(observer)

    def record(
        self,
        name: str,
        payload: Payload | None = None,
        *,
        timestamp: Optional[datetime] = None,
    ) -> TemplateEvent:
        """Build the event and, while enabled, hand it to every interested observer."""

        event = TemplateEvent(
            timestamp=timestamp or datetime.now(timezone.utc),
            service=self.service,
            name=name,
            payload=dict(payload or {}),
        )
        if not self._hub.enabled:
            return event
        with self._hub.lock:
            targets = [s.observer for s in self._hub.subscriptions if s.wants(event)]
        for observer in targets:
            try:
                observer(event)
            except Exception:
                # An observer must never fail the template operation that emitted the event.
                LOGGER.exception("Event observer failed for %s.%s", event.service, event.name)
        return event


_GLOBAL_RECORDER = EventRecorder()


def get_event_recorder(service: Sequence[str] | str | None = None) -> EventRecorder:
    """Return the process-wide recorder, or a child of it scoped to ``service``."""

    if service is None:
        return _GLOBAL_RECORDER
    return _GLOBAL_RECORDER.scoped(service)


def set_event_recorder(recorder: EventRecorder) -> None:
    global _GLOBAL_RECORDER
    _GLOBAL_RECORDER = recorder


def reset_event_recorder() -> None:
    set_event_recorder(EventRecorder())
