"""In-process cache envelope shared by the category, menu, form and content caches."""
import time

SWEEP_EVERY = 50


def system_clock():
    return time.time()


class CacheEntry:
    __slots__ = ('data', 'fetched_at', 'key')

    def __init__(self, data=None, fetched_at=0.0, key=None):
        self.data = data
        self.fetched_at = fetched_at
        self.key = key

    def is_fresh(self, now, ttl):
        return self.fetched_at > 0 and (now - self.fetched_at) < ttl

    def __repr__(self):
        return f'CacheEntry(key={self.key!r}, fetched_at={self.fetched_at!r})'
