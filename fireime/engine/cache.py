from collections import OrderedDict
from typing import Hashable, Optional

from .config import LookupResult


class PageCache:
    """候选页 LRU 缓存，键为 (查询前缀, 页码)"""
    def __init__(self, capacity: int = 256):
        self.capacity = capacity
        self.pages: "OrderedDict[Hashable, LookupResult]" = OrderedDict()
        self.hits = 0
        self.misses = 0

    def get(self, key: Hashable) -> Optional[LookupResult]:
        if key in self.pages:
            self.hits += 1
            self.pages.move_to_end(key)
            return self.pages[key]
        self.misses += 1
        return None

    def put(self, key: Hashable, value: LookupResult):
        if self.capacity <= 0:
            return
        if key in self.pages:
            self.pages.move_to_end(key)
        elif len(self.pages) >= self.capacity:
            self.pages.popitem(last=False)
        self.pages[key] = value

    def clear(self):
        self.pages.clear()

    def __len__(self):
        return len(self.pages)

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0
