# store.py
"""
One ordered source of truth per entity.

Local writes (``LocalPatch``) and listener events (``ChangeEvent``) are
queued and applied strictly in arrival order. Each document carries a
``version`` that the backend bumps on every write; an event older than the
version already held is dropped, so a late listener snapshot never undoes a
newer local write.
"""
from collections import deque
from dataclasses import dataclass, field

from .subscription import REMOVED, ChangeEvent


@dataclass(frozen=True)
class LocalPatch:
    doc_id: str
    version: int
    changes: dict = field(default_factory=dict)


class EntityStore:
    def __init__(self):
        self._docs = {}
        self._queue = deque()

    def dispatch(self, event):
        self._queue.append(event)

    def drain(self):
        """Apply every queued event in order; returns how many were applied."""
        applied = 0
        while self._queue:
            if self._apply(self._queue.popleft()):
                applied += 1
        return applied

    def _held_version(self, doc_id):
        return self._docs.get(doc_id, {}).get("version", 0)

    def _apply(self, event):
        if isinstance(event, LocalPatch):
            current = self._docs.get(event.doc_id)
            if current is None or event.version < self._held_version(event.doc_id):
                return False
            self._docs[event.doc_id] = {**current, **event.changes, "version": event.version}
            return True

        if isinstance(event, ChangeEvent):
            if event.type == REMOVED:
                return self._docs.pop(event.doc_id, None) is not None
            if event.doc_id in self._docs and event.version < self._held_version(event.doc_id):
                return False
            self._docs[event.doc_id] = dict(event.doc)
            return True

        raise TypeError(f"Unsupported event: {event!r}")

    def get(self, doc_id):
        return self._docs.get(doc_id)

    def values(self):
        return list(self._docs.values())

    def __len__(self):
        return len(self._docs)
