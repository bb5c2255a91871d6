"""
a registry of resources that builds a resource chain for each request.

A :py:class:`ResourceManager` holds the resource classes that have been registered with it, keyed
by machine name and version.  For each request, it instantiates the appropriate
:py:class:`~rescore.resource.base.Resource` and wraps it with the decorators configured for it,
innermost first.  The chain is handed back to the caller (or, via :py:meth:`process_request`,
used to process the request) and discarded afterward; only the caches and counters used by the
decorators persist across requests.

The manager's configuration recognizes the following parameters:

``base_path``
    _str_.  the path prefix that resource URLs begin with; default: "api".  This value is also
    passed to each resource as a default configuration parameter, as is ``base_url``.
``resources``
    _dict_.  per-resource configuration, keyed by resource machine name.  Each value is passed
    as the resource's configuration, except for the ``decorators`` parameter, a list of the names
    of the decorators to wrap the resource with, innermost first.
``rate_limit``
    _dict_.  the configuration for the ``rate_limit`` decorator (see
    :py:class:`~rescore.resource.decorators.ratelimit.RateLimitDecoratedResource`)
``render_cache``
    _dict_.  the configuration for the ``render_cache`` decorator (see
    :py:class:`~rescore.resource.decorators.cache.CacheDecoratedResource`)
"""
import re, logging
from collections import OrderedDict
from collections.abc import Mapping
from copy import deepcopy
from logging import Logger
from typing import Callable, List, Union

from rescore.base.config import ConfigurationException, load_from_file, merge_config
from .base import ResourceInterface, ResourceVersion
from .request import Request
from .exceptions import BadRequest, Forbidden, NotFound
from .decorators import (CacheDecoratedResource, MemoryCache,
                         RateLimitDecoratedResource, RateLimiter)

__all__ = [ "ResourceManager", "create_resource_manager" ]

VERSION_HEADER = "X-API-Version"
_version_seg_re = re.compile(r'^v\d+(\.\d+)?$', re.IGNORECASE)

class ResourceManager(object):
    """
    a registry of resource classes that can build a decorated resource chain on request
    """
    RATE_LIMIT = "rate_limit"
    RENDER_CACHE = "render_cache"

    def __init__(self, config: Mapping=None, log: Logger=None):
        """
        :param dict config:  the manager's configuration (see the module documentation)
        :param Logger  log:  the Logger to send messages to
        """
        if config is None:
            config = {}
        self.cfg = config
        if not log:
            log = logging.getLogger("rescore.manager")
        self.log = log

        self._registry = OrderedDict()
        self._decorators = OrderedDict()
        self._cache = MemoryCache()
        self._limiter = RateLimiter()

    @property
    def cache(self) -> MemoryCache:
        """
        the cache shared by all ``render_cache`` decorators created by this manager
        """
        return self._cache

    @property
    def limiter(self) -> RateLimiter:
        """
        the request counter shared by all ``rate_limit`` decorators created by this manager
        """
        return self._limiter

    def register(self, resource_class: type, definition: Mapping=None):
        """
        register a resource class.
        :param type resource_class:  the class to instantiate; it must implement
                                     :py:class:`~rescore.resource.base.ResourceInterface` and
                                     accept a plugin definition, a configuration, and a Logger
                                     as its constructor arguments.
        :param dict definition:  the plugin definition to give to the resource; if not
                                 provided, the ``definition`` attribute of the class is used.
        """
        if not isinstance(resource_class, type) or not issubclass(resource_class, ResourceInterface):
            raise TypeError("Not a ResourceInterface class: "+repr(resource_class))
        if definition is None:
            definition = getattr(resource_class, 'definition', None)
        if not isinstance(definition, Mapping) or not definition.get('resource'):
            raise ConfigurationException("Missing or incomplete plugin definition for "+
                                         resource_class.__name__, param="resource")

        version = ResourceVersion(int(definition.get('major_version', 1)),
                                  int(definition.get('minor_version', 0)))
        self._registry.setdefault(definition['resource'], OrderedDict())[version] = \
            (resource_class, definition)

    def register_decorator(self, name: str, factory: Callable):
        """
        make a custom decorator available to be named in a resource's ``decorators`` list.
        :param str       name:  the name to refer to the decorator by
        :param Callable factory:  a function that accepts the subject to wrap and this manager
                                  and returns the decorator.
        """
        if name in (self.RATE_LIMIT, self.RENDER_CACHE):
            raise ValueError("Cannot override built-in decorator: "+name)
        self._decorators[name] = factory

    def list_resources(self) -> List[Mapping]:
        """
        return the plugin definitions of all registered resources
        """
        return [defn for versions in self._registry.values() for cls, defn in versions.values()]

    def get_versions(self, name: str) -> List[ResourceVersion]:
        """
        return the registered versions of the named resource in ascending order
        """
        return sorted(self._registry.get(name, {}).keys())

    def _find(self, name: str, version=None):
        versions = self._registry.get(name)
        if not versions:
            raise NotFound("Resource not found: "+str(name))
        if version is None:
            return versions[max(versions)]

        try:
            ver = ResourceVersion.parse(version)
        except ValueError as ex:
            raise BadRequest(str(ex))
        if isinstance(version, str) and '.' not in version:
            # only a major version was given; select its latest minor version
            matches = [v for v in versions if v.major == ver.major]
            if matches:
                ver = max(matches)
        if ver not in versions:
            raise NotFound("Version {0} of resource {1} not found".format(str(ver), name))
        return versions[ver]

    def _decorate(self, subject: ResourceInterface, name: str) -> ResourceInterface:
        if name == self.RATE_LIMIT:
            return RateLimitDecoratedResource(subject, self._limiter, self.cfg.get('rate_limit', {}),
                                              self.log.getChild(name))
        elif name == self.RENDER_CACHE:
            return CacheDecoratedResource(subject, self._cache, self.cfg.get('render_cache', {}),
                                          self.log.getChild(name))
        elif name in self._decorators:
            return self._decorators[name](subject, self)
        raise ConfigurationException("Unsupported resource decorator: "+str(name), param="decorators")

    def get_resource(self, name: str, version=None, request: Request=None) -> ResourceInterface:
        """
        build and return a new resource chain for the named resource.
        :param str    name:  the machine name of the resource
        :param     version:  the version of the resource, either as a ResourceVersion or a
                             string like "v1.0" or "1"; if None, the latest version is used.
        :param Request request:  the request to attach to the resource
        :raises NotFound:  if the resource or the version is not registered
        :raises ConfigurationException:  if the resource's configuration names an unsupported
                             decorator
        """
        resource_class, definition = self._find(name, version)

        rescfg = deepcopy(self.cfg.get('resources', {}).get(name) or {})
        decorators = rescfg.pop('decorators', None) or []
        defcfg = OrderedDict((k, self.cfg[k]) for k in ('base_path', 'base_url') if k in self.cfg)

        out = resource_class(definition, merge_config(rescfg, defcfg), self.log.getChild(name))
        for dec in decorators:
            out = self._decorate(out, dec)
        if request is not None:
            out.set_request(request)

        self.log.debug("Built %s resource chain with decorators: %s", out.get_resource_name(),
                       ", ".join(decorators) or "(none)")
        return out

    def parse_path(self, path: str) -> tuple:
        """
        split a request URL path into the resource name, the requested version (or None), and
        the resource-relative path.  The path has the form,
        ``[<base_path>/][v<major>[.<minor>]/]<resource>[/<path>]``.
        :raises NotFound:  if the path does not name a resource
        """
        parts = [p for p in (path or '').split('/') if p]
        base = [p for p in self.cfg.get('base_path', 'api').split('/') if p]
        if base and parts[:len(base)] == base:
            parts = parts[len(base):]

        version = None
        if parts and _version_seg_re.match(parts[0]):
            version = parts.pop(0)
        if not parts:
            raise NotFound("No resource requested")
        return (parts[0], version, '/'.join(parts[1:]))

    def process_request(self, request: Request):
        """
        build the resource chain for a request and return the result of processing it.  The
        resource version is taken from the path or else from the ``X-API-Version`` header.
        :raises Forbidden:  if the resource denies access to the request
        """
        name, version, path = self.parse_path(request.path)
        if version is None:
            version = request.get_header(VERSION_HEADER)

        resource = self.get_resource(name, version, request)
        resource.set_path(path)
        if not resource.access():
            self.log.info("Access to %s denied for %s", resource.get_resource_name(),
                          resource.get_account().actor)
            raise Forbidden("Access denied to resource "+resource.get_resource_name())
        return resource.process()

def create_resource_manager(config: Union[Mapping, str], log: Logger=None) -> ResourceManager:
    """
    instantiate a :py:class:`ResourceManager` based on the given configuration
    :param config:  the configuration data, or the path to a YAML or JSON file containing it
    """
    if isinstance(config, str):
        config = load_from_file(config)
    if not isinstance(config, Mapping):
        raise ConfigurationException("resource manager config: not a dictionary: "+str(config))

    mgr = ResourceManager(config, log)
    for name, rescfg in config.get('resources', {}).items():
        if not isinstance(rescfg, Mapping):
            raise ConfigurationException("resources.{0}: not a dictionary".format(name),
                                         param="resources")
        for dec in rescfg.get('decorators') or []:
            if dec not in (mgr.RATE_LIMIT, mgr.RENDER_CACHE):
                mgr.log.warning("resources.%s: decorator %s must be registered before use", name, dec)
    return mgr
