"""
Resource decorators: nodes that wrap a resource (or another decorator) to add behavior to it.

``base``
    :py:class:`ResourceDecoratorBase`, which passes every operation through to the wrapped
    subject, and the :py:class:`ResourceDecoratorInterface` it implements
``cache``
    :py:class:`CacheDecoratedResource`, which caches responses to read requests
``ratelimit``
    :py:class:`RateLimitDecoratedResource`, which limits the request rate per account
"""
from .base import ResourceDecoratorInterface, ResourceDecoratorBase
from .cache import CacheDecoratedResource, MemoryCache
from .ratelimit import RateLimitDecoratedResource, RateLimiter

__all__ = [ "ResourceDecoratorInterface", "ResourceDecoratorBase", "CacheDecoratedResource",
            "MemoryCache", "RateLimitDecoratedResource", "RateLimiter" ]
