# subscription.py
"""
Polling realtime subscriptions.

A ``Subscription`` watches one filtered, ordered query and reports what
changed since the previous look as ``ChangeEvent``s, the way a snapshot
listener reports document changes. The consumer owns the handle: it starts
it, pulls events, and stops it. Starting again after a stop resets the
snapshot, so the first poll re-emits every matching document as ``added``.
"""
import logging
import time
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

ADDED = "added"
MODIFIED = "modified"
REMOVED = "removed"


@dataclass(frozen=True)
class ChangeEvent:
    type: str
    doc_id: str
    doc: Optional[dict] = None

    @property
    def version(self):
        return (self.doc or {}).get("version", 0)


class Subscription:
    def __init__(self, collection, query, sort=None, name=None):
        self.collection = collection
        self.query = dict(query)
        self.sort = list(sort or [])
        self.name = name or collection.name
        self._snapshot = {}
        self._active = False

    @property
    def active(self):
        return self._active

    def start(self):
        self._snapshot = {}
        self._active = True
        logger.debug("Subscription %s started", self.name)
        return self

    def stop(self):
        if self._active:
            logger.debug("Subscription %s stopped", self.name)
        self._active = False

    def __enter__(self):
        return self.start()

    def __exit__(self, exc_type, exc, tb):
        self.stop()

    def _fetch(self):
        cursor = self.collection.find(self.query)
        if self.sort:
            cursor = cursor.sort(self.sort)
        return list(cursor)

    def poll(self):
        if not self._active:
            raise RuntimeError(f"Subscription {self.name} is not started")

        current = {}
        events = []
        for doc in self._fetch():
            doc_id = str(doc["_id"])
            current[doc_id] = doc
            previous = self._snapshot.get(doc_id)
            if previous is None:
                events.append(ChangeEvent(ADDED, doc_id, doc))
            elif previous != doc:
                events.append(ChangeEvent(MODIFIED, doc_id, doc))

        for doc_id, doc in self._snapshot.items():
            if doc_id not in current:
                events.append(ChangeEvent(REMOVED, doc_id, doc))

        self._snapshot = current
        return events

    def events(self, interval=1.0, max_polls=None):
        """
        Lazily yield change events until the subscription is stopped
        (or ``max_polls`` polls have been made).
        """
        polls = 0
        while self._active:
            for event in self.poll():
                yield event
                if not self._active:
                    return
            polls += 1
            if max_polls is not None and polls >= max_polls:
                return
            time.sleep(interval)
