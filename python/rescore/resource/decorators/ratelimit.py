"""
A decorator that limits the rate at which an account may make requests on a resource.
"""
import time, threading, heapq, itertools, logging
from collections.abc import Mapping
from logging import Logger

from .base import ResourceDecoratorBase
from ..base import ResourceInterface
from ..account import Account
from ..exceptions import TooManyRequests

__all__ = [ "RateLimiter", "RateLimitDecoratedResource" ]

class RateLimiter(object):
    """
    a counter of events per key over fixed periods.  Access to the counters is guarded by a
    lock so that a single instance can be shared by the resource chains handling concurrent
    requests.  Counters whose period has ended are dropped as new events are registered.
    """

    def __init__(self):
        self._counts = {}
        self._expiries = []    # heap of (expires, seq, key)
        self._seq = itertools.count()
        self._lock = threading.Lock()

    def _purge(self, now):
        while self._expiries and self._expiries[0][0] <= now:
            expires, seq, key = heapq.heappop(self._expiries)
            if key in self._counts and self._counts[key][1] == expires:
                del self._counts[key]

    def hit(self, key, period: float) -> tuple:
        """
        register an event for the given key and return a 2-tuple containing the number of
        events registered in the current period (including this one) and the time when the
        period ends.  A new period starts with the first event after the previous one ended.
        """
        now = time.time()
        with self._lock:
            self._purge(now)
            count, expires = self._counts.get(key, (0, 0))
            if expires <= now:
                count, expires = 0, now + period
                heapq.heappush(self._expiries, (expires, next(self._seq), key))
            count += 1
            self._counts[key] = (count, expires)
            return (count, expires)

    def reset(self, key=None):
        """
        forget the events registered for the given key, or for all keys if key is None
        """
        with self._lock:
            if key is None:
                self._counts.clear()
                self._expiries = []
            else:
                self._counts.pop(key, None)

    def __len__(self):
        with self._lock:
            return len(self._counts)

class RateLimitDecoratedResource(ResourceDecoratorBase):
    """
    a decorator that counts each request against the acting account before passing it on to
    its subject.  When the account has exceeded its limit for the current period, the request
    is rejected with a :py:class:`~rescore.resource.exceptions.TooManyRequests` error.
    Accounts of the ``admin`` class are not limited.

    The configuration recognizes the following parameters:

    ``period``
        _float_.  the length of a counting period in seconds; default: 3600
    ``limits``
        _dict_.  the maximum number of requests allowed per period, given for the
        ``anonymous`` and ``authenticated`` classes of accounts.  A missing or negative limit
        means the class is not limited.
    """
    DEF_PERIOD = 3600

    def __init__(self, subject: ResourceInterface, limiter: RateLimiter=None, config: Mapping=None,
                 log: Logger=None):
        """
        :param ResourceInterface subject:  the resource node to wrap
        :param RateLimiter limiter:  the counter to register requests with; if not provided, a
                                     private one is created.
        :param dict config:  the decorator's configuration
        :param Logger  log:  the Logger to send messages to
        """
        super(RateLimitDecoratedResource, self).__init__(subject)
        if limiter is None:
            limiter = RateLimiter()
        self._limiter = limiter
        self.cfg = config or {}
        if not log:
            log = logging.getLogger("rescore.resource.ratelimit")
        self.log = log

    @property
    def limiter(self) -> RateLimiter:
        return self._limiter

    def get_account(self, cache: bool=True) -> Account:
        # unlike the base decorator, this one honors the cache hint
        return self._subject.get_account(cache)

    def get_limit(self, account: Account) -> int:
        """
        return the number of requests the given account may make per period, or -1 if it is
        not limited
        """
        if account.is_admin():
            return -1
        limits = self.cfg.get('limits', {})
        limit = limits.get('anonymous' if account.is_anonymous() else 'authenticated')
        if limit is None:
            return -1
        return int(limit)

    def check_rate_limit(self):
        """
        register the current request against the acting account
        :raises TooManyRequests:  if the account has exceeded its limit
        """
        account = self.get_account()
        limit = self.get_limit(account)
        if limit < 0:
            return

        key = (self.get_resource_machine_name(), account.actor)
        count, expires = self._limiter.hit(key, float(self.cfg.get('period', self.DEF_PERIOD)))
        if count > limit:
            retry = max(int(expires - time.time()), 0)
            self.log.info("Rate limit exceeded for %s on %s", account.actor,
                          self.get_resource_name())
            raise TooManyRequests("Rate limit reached; try again in {0} seconds".format(retry),
                                  {"retry_after": retry})

    def process(self):
        self.check_rate_limit()
        return self._subject.process()
