"""
A decorator that caches the responses of read requests on a resource.
"""
import time, threading, heapq, itertools, logging
from copy import deepcopy
from collections.abc import Mapping
from logging import Logger

from .base import ResourceDecoratorBase
from ..base import ResourceInterface

__all__ = [ "MemoryCache", "CacheDecoratedResource" ]

_NOT_CACHED = object()

class MemoryCache(object):
    """
    a simple in-memory cache with per-entry expiration.  Access to the entries is guarded by a
    lock so that a single instance can be shared by the resource chains handling concurrent
    requests.  Expired entries are dropped whenever a new value is stored.
    """

    def __init__(self):
        self._entries = {}
        self._expiries = []    # heap of (expires, seq, key)
        self._seq = itertools.count()
        self._lock = threading.Lock()

    def _purge(self, now):
        while self._expiries and self._expiries[0][0] <= now:
            expires, seq, key = heapq.heappop(self._expiries)
            entry = self._entries.get(key)
            if entry is not None and entry[0] == expires:
                del self._entries[key]

    def get(self, key, default=None):
        """
        return the unexpired value stored under the given key or ``default`` if there is none
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return default
            if entry[0] is not None and entry[0] <= time.time():
                del self._entries[key]
                return default
            return entry[1]

    def set(self, key, value, ttl: float=None):
        """
        store a value under a key
        :param float ttl:  the number of seconds the value should remain available; if None,
                           it will not expire.
        """
        now = time.time()
        expires = None if ttl is None else now + ttl
        with self._lock:
            self._purge(now)
            self._entries[key] = (expires, value)
            if expires is not None:
                heapq.heappush(self._expiries, (expires, next(self._seq), key))

    def invalidate(self, prefix: tuple):
        """
        remove all entries whose (tuple) keys start with the given items.  The number of
        entries removed is returned.
        """
        n = len(prefix)
        with self._lock:
            drop = [k for k in self._entries if isinstance(k, tuple) and k[:n] == prefix]
            for k in drop:
                del self._entries[k]
        return len(drop)

    def clear(self):
        with self._lock:
            self._entries.clear()
            self._expiries = []

    def __len__(self):
        with self._lock:
            return len(self._entries)

class CacheDecoratedResource(ResourceDecoratorBase):
    """
    a decorator that answers read requests (GET, HEAD) from a cache of previous responses.
    Responses are cached per resource version, path, query, and acting account.  A write
    request is forwarded to the subject, after which all cached responses for the resource are
    dropped.

    The configuration recognizes the following parameter:

    ``ttl``
        _float_.  the number of seconds a cached response remains valid; default: 300
    """
    DEF_TTL = 300

    def __init__(self, subject: ResourceInterface, cache: MemoryCache=None, config: Mapping=None,
                 log: Logger=None):
        """
        :param ResourceInterface subject:  the resource node to wrap
        :param MemoryCache cache:  the cache to store responses in; if not provided, a private
                                   one is created (which is only useful within one chain).
        :param dict config:  the decorator's configuration
        :param Logger  log:  the Logger to send messages to
        """
        super(CacheDecoratedResource, self).__init__(subject)
        if cache is None:
            cache = MemoryCache()
        self._cache = cache
        self.cfg = config or {}
        if not log:
            log = logging.getLogger("rescore.resource.cache")
        self.log = log

    @property
    def cache(self) -> MemoryCache:
        return self._cache

    def _cache_prefix(self):
        return (self.get_resource_machine_name(), str(self.get_version()))

    def cache_key(self):
        """
        return the key that the response to the current request would be cached under
        """
        request = self.get_request()
        query = tuple(sorted((k, tuple(v)) for k, v in request.query.items()))
        return self._cache_prefix() + (self.get_path(), query, self.get_account().actor)

    def invalidate(self):
        """
        drop all cached responses for this resource
        """
        n = self._cache.invalidate(self._cache_prefix())
        if n:
            self.log.debug("Dropped %d cached responses for %s", n, self.get_resource_name())

    def process(self):
        if not self.get_request().is_read_only():
            out = self._subject.process()
            self.invalidate()
            return out

        key = self.cache_key()
        out = self._cache.get(key, _NOT_CACHED)
        if out is not _NOT_CACHED:
            self.log.debug("Cache hit for %s path '%s'", self.get_resource_name(), key[2])
            return deepcopy(out)

        out = self._subject.process()
        self._cache.set(key, deepcopy(out), self.cfg.get('ttl', self.DEF_TTL))
        return out
