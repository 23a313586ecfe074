import math

from ..cache import SWEEP_EVERY, system_clock
from ..errors import RateLimitExceeded


class ContactThrottle:
    """Per-IP fixed-window submission limiter plus post-success cooldown.

    Both maps live in process memory. Expired entries are dropped lazily on
    access and by a sweep that runs every ``SWEEP_EVERY`` calls.
    """

    def __init__(self, window_seconds=60, max_requests=5, cooldown_seconds=60, clock=system_clock):
        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self.cooldown_seconds = cooldown_seconds
        self.clock = clock
        self.buckets = {}
        self.cooldowns = {}
        self._calls = 0

    def _tick(self, now):
        self._calls += 1
        if self._calls % SWEEP_EVERY == 0:
            self.sweep(now)

    def sweep(self, now=None):
        now = self.clock() if now is None else now
        for ip, bucket in list(self.buckets.items()):
            if bucket['reset_at'] <= now:
                self.buckets.pop(ip, None)
        for ip, entry in list(self.cooldowns.items()):
            if entry['allow_at'] <= now:
                self.cooldowns.pop(ip, None)

    def enforce_rate_limit(self, ip):
        key = ip or 'unknown'
        now = self.clock()
        self._tick(now)
        bucket = self.buckets.get(key)
        if bucket is None or bucket['reset_at'] <= now:
            self.buckets[key] = {'count': 1, 'reset_at': now + self.window_seconds}
            return 1
        if bucket['count'] >= self.max_requests:
            raise RateLimitExceeded(max(1, math.ceil(bucket['reset_at'] - now)))
        bucket['count'] += 1
        return bucket['count']

    def start_cooldown(self, ip, message):
        allow_at = self.clock() + self.cooldown_seconds
        self.cooldowns[ip or 'unknown'] = {'allow_at': allow_at, 'message': message}
        return allow_at

    def get_cooldown(self, ip):
        """Return ``(remaining_seconds, message)`` while a cooldown is active, else ``None``."""
        key = ip or 'unknown'
        now = self.clock()
        self._tick(now)
        entry = self.cooldowns.get(key)
        if entry is None:
            return None
        remaining = entry['allow_at'] - now
        if remaining <= 0:
            self.cooldowns.pop(key, None)
            return None
        return max(1, math.ceil(remaining)), entry['message']
