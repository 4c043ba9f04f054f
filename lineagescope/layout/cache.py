"""Layout result cache keyed by value, never by object identity."""

from collections import OrderedDict
from collections.abc import Iterable

from lineagescope.layout.options import LayoutOptions
from lineagescope.models.graph import LayoutResult

CacheKey = tuple[str, str, tuple[str, ...]]


def make_key(layout_type: str, options: LayoutOptions, node_ids: Iterable[str]) -> CacheKey:
    """Cache key: (layout type, canonical options JSON, sorted node ids)."""
    return layout_type, options.signature(), tuple(sorted(set(node_ids)))


class LayoutCache:
    """Most-recently-used cache of layout results for one graph.

    Each entry remembers the graph revision it was computed for; a lookup
    under a different revision drops every stale entry.
    """

    def __init__(self, max_entries: int = 16) -> None:
        self.max_entries = max_entries
        self._entries: OrderedDict[CacheKey, tuple[int, LayoutResult]] = OrderedDict()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def get(self, key: CacheKey, revision: int) -> LayoutResult | None:
        entry = self._entries.get(key)
        if entry is not None and entry[0] != revision:
            self.evict_stale(revision)
            entry = None
        if entry is None:
            self.misses += 1
            return None
        self._entries.move_to_end(key)
        self.hits += 1
        return entry[1].snapshot()

    def put(self, key: CacheKey, result: LayoutResult, revision: int) -> None:
        self._entries[key] = (revision, result.snapshot())
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def evict_stale(self, revision: int) -> int:
        """Drop entries computed for any other graph revision."""
        stale = [k for k, (rev, _) in self._entries.items() if rev != revision]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()
