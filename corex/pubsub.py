"""In-process publish/subscribe broker with per-subscriber consumer threads."""

from __future__ import annotations

import dataclasses
import logging
import threading
from dataclasses import dataclass
from typing import Callable

from corex.workqueue import ChannelQueue

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Topic:
    """A message published under topic ``id``; ``sender`` names the publisher."""

    id: str
    msg: str = ""
    sender: str = ""


ConsumeFunc = Callable[[Topic], None]


class Broker:
    """Buffers published topics and hands them to the subscribers of each topic id."""

    def __init__(self, buffer_size: int = 0) -> None:
        self._buffer = ChannelQueue(buffer_size)
        self._subscribers: dict[str, list[Subscriber]] = {}
        self._lock = threading.Lock()

    def subscribe(self, topic_id: str, subscriber: "Subscriber") -> None:
        """Deliver topics with ``topic_id`` to ``subscriber``."""
        with self._lock:
            self._subscribers.setdefault(topic_id, []).append(subscriber)

    def unsubscribe(self, topic_id: str, subscriber: "Subscriber") -> None:
        """Stop delivering ``topic_id`` to the first subscriber with the same name."""
        with self._lock:
            subs = self._subscribers.get(topic_id, [])
            for index, sub in enumerate(subs):
                if sub.name == subscriber.name:
                    del subs[index]
                    return

    def publish(self, topic: Topic) -> None:
        """Queue a topic for delivery, blocking while the buffer is full."""
        self._buffer.write(topic)

    def run(self) -> None:
        """Deliver queued topics until :meth:`stop` is called."""
        for topic in self._buffer:
            with self._lock:
                subs = list(self._subscribers.get(topic.id, []))
            for sub in subs:
                sub.receive(topic)

    def stop(self) -> None:
        """Stop every subscriber and close the buffer."""
        with self._lock:
            subs = [sub for group in self._subscribers.values() for sub in group]
        for sub in subs:
            sub.stop()
        self._buffer.stop()


class Subscriber:
    """Receives topics from a broker and passes each to the function registered for it."""

    def __init__(self, name: str, broker: Broker) -> None:
        self.name = name
        self._broker = broker
        self._buffer = ChannelQueue(1)
        self._topics: dict[str, ConsumeFunc] = {}
        self._lock = threading.Lock()
        self._thread = threading.Thread(target=self._consume, daemon=True)
        self._thread.start()

    def subscribe(self, topic_id: str, consume: ConsumeFunc) -> None:
        """Call ``consume`` for every topic with ``topic_id``."""
        with self._lock:
            self._topics[topic_id] = consume
        self._broker.subscribe(topic_id, self)

    def unsubscribe(self, topic_id: str) -> None:
        with self._lock:
            self._topics.pop(topic_id, None)
        self._broker.unsubscribe(topic_id, self)

    def receive(self, topic: Topic) -> None:
        """Hand a topic to the consumer thread."""
        self._buffer.write(topic)

    def _consume(self) -> None:
        for topic in self._buffer:
            with self._lock:
                consume = self._topics.get(topic.id)
            if consume is None:
                continue
            try:
                consume(topic)
            except Exception:
                logger.exception("consumer of %s failed on topic %s", self.name, topic.id)

    def stop(self) -> None:
        """Unsubscribe from every topic and end the consumer thread."""
        with self._lock:
            topic_ids = list(self._topics)
        for topic_id in topic_ids:
            self.unsubscribe(topic_id)
        self._buffer.stop()

    def __repr__(self) -> str:
        return f"Subscriber({self.name!r})"


class Publisher:
    """Publishes topics to a broker under its own name."""

    def __init__(self, name: str, broker: Broker) -> None:
        self.name = name
        self._broker = broker

    def publish(self, topic: Topic) -> None:
        self._broker.publish(dataclasses.replace(topic, sender=self.name))