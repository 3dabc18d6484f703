"""
Write-path cache invalidation for the mobile API.

Admin handlers call the broadcaster only after their write has committed.
A read that started before the invalidation may still cache pre-write data
until its TTL runs out.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Dict, Iterable, List, Optional, Tuple

from shared.logging import get_logger
from .cache_store import CacheStore

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


ENTITY_PATTERNS: Dict[str, Tuple[str, ...]] = {
    "cards": ("mobile:cards:*",),
    "settings": ("mobile:*",),
    "radio": ("mobile:radio:*",),
    "polls": ("mobile:polls:*",),
    "news": ("mobile:news:*",),
}


@dataclass(frozen=True)
class InvalidationEvent:
    """Published to subscribers once the store has been purged."""

    entity: str
    patterns: Tuple[str, ...]
    removed: int


Listener = Callable[[InvalidationEvent], None]


class InvalidationBroadcaster:
    """Pattern invalidation plus typed notifications per entity."""

    def __init__(self, store: CacheStore, metrics: Optional["MetricsCollector"] = None):
        self.store = store
        self.metrics = metrics
        self.logger = get_logger("mobile.invalidation")
        self._listeners: Dict[str, List[Listener]] = {}

    def invalidate(self, patterns: Iterable[str]) -> Dict[str, int]:
        """Purge every pattern and return the removed count per pattern."""
        counts: Dict[str, int] = {}
        for pattern in patterns:
            removed = self.store.invalidate(pattern)
            counts[pattern] = counts.get(pattern, 0) + removed
            if self.metrics is not None and removed:
                self.metrics.increment_counter("cache_invalidations_total", removed, pattern=pattern)

        self.logger.info("Cache invalidated", patterns=list(counts), removed=sum(counts.values()))
        return counts

    def invalidate_entity(self, entity: str) -> Dict[str, int]:
        """Invalidate the namespaces that serve ``entity`` and notify subscribers."""
        if entity not in ENTITY_PATTERNS:
            raise ValueError(f"Unknown cache entity '{entity}'")

        patterns = ENTITY_PATTERNS[entity]
        counts = self.invalidate(patterns)
        self._publish(InvalidationEvent(entity=entity, patterns=patterns, removed=sum(counts.values())))
        return counts

    def subscribe(self, entity: str, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` for ``entity``; returns an unsubscribe callable."""
        if entity not in ENTITY_PATTERNS:
            raise ValueError(f"Unknown cache entity '{entity}'")
        self._listeners.setdefault(entity, []).append(listener)

        def unsubscribe() -> None:
            listeners = self._listeners.get(entity, [])
            if listener in listeners:
                listeners.remove(listener)

        return unsubscribe

    def _publish(self, event: InvalidationEvent) -> None:
        # settings purges "mobile:*", so listeners of every entity are told.
        targets = list(ENTITY_PATTERNS) if event.entity == "settings" else [event.entity]
        for entity in targets:
            for listener in list(self._listeners.get(entity, [])):
                try:
                    listener(event)
                except Exception as exc:
                    self.logger.error(
                        "Invalidation listener failed",
                        entity=entity,
                        listener=getattr(listener, "__qualname__", repr(listener)),
                        error=str(exc),
                    )
