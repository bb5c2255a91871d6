"""
A framework for composing REST resources from a primary implementation and layers of decorators.

The framework is built around the following model:
  *  A resource is accessed through the operations of :py:class:`~rescore.resource.base.ResourceInterface`:
     request and path accessors, its identity and version, its field definitions and data
     provider, its routing table of controllers, and the six CRUD operations.
  *  A :py:class:`~rescore.resource.base.Resource` is the terminal ("primary") implementation of
     that interface.  It owns the data access and routing logic.
  *  A decorator (a :py:class:`~rescore.resource.decorators.base.ResourceDecoratorBase` subclass)
     wraps another node--a Resource or another decorator--and implements the same interface by
     passing every operation through, except those it deliberately overrides.  The nested
     decorators and the Resource at the center form a *chain*, addressed through its outermost
     node.
  *  A :py:class:`~rescore.resource.manager.ResourceManager` builds a fresh chain for each request
     according to its configuration.

A caller holding the head of a chain cannot tell it apart from an undecorated resource: identity
and version information always reflect the primary resource, and errors raised within the chain
propagate unchanged unless a decorator deliberately handles them.
"""
from .exceptions import *
from .account import Account
from .request import Request
from .fields import ResourceField
from .dataprovider import DataProvider, InMemoryDataProvider
from .base import ResourceVersion, ResourceInterface, Resource
from .decorators import (ResourceDecoratorInterface, ResourceDecoratorBase,
                         CacheDecoratedResource, RateLimitDecoratedResource)
from .manager import ResourceManager, create_resource_manager

try:
    from .version import __version__
except ImportError:
    __version__ = "(unset)"
