"""
The resource contract and its terminal implementation.

:py:class:`ResourceInterface` names every operation that a node in a resource chain must
support.  :py:class:`Resource` is the terminal ("primary") implementation that owns real field
definitions, a data provider, and the table that routes paths to controllers.  Behaviors that
cut across resources are layered around a Resource by decorators (see
:py:mod:`rescore.resource.decorators`), each of which implements this same interface.
"""
import re, logging
from abc import ABC, abstractmethod
from collections import OrderedDict, namedtuple
from collections.abc import Mapping
from copy import deepcopy
from logging import Logger
from typing import Callable, List, Set
from urllib.parse import urlencode

from rescore.base.config import ConfigurationException, merge_config
from .account import Account
from .request import Request
from .fields import ResourceField, process_public_fields
from .dataprovider import DataProvider, InMemoryDataProvider
from .exceptions import BadRequest, Forbidden, NotFound, Unprocessable

__all__ = [ "ResourceVersion", "ResourceInterface", "Resource" ]

class ResourceVersion(namedtuple("ResourceVersion", "major minor")):
    """
    the API version of a resource as a (major, minor) tuple
    """
    __slots__ = ()

    @classmethod
    def parse(cls, version):
        """
        convert a version given as a string (e.g. "v1.2", "1.2", or "1") or a tuple into a
        ResourceVersion
        :raises ValueError:  if the version cannot be interpreted
        """
        if isinstance(version, ResourceVersion):
            return version
        if isinstance(version, (tuple, list)):
            parts = list(version)
        else:
            parts = str(version).strip().lstrip('vV').split('.')
        if not parts or len(parts) > 2:
            raise ValueError("Not a resource version: "+str(version))
        if len(parts) < 2:
            parts.append(0)
        try:
            return cls(int(parts[0]), int(parts[1]))
        except (TypeError, ValueError):
            raise ValueError("Not a resource version: "+str(version))

    def __str__(self):
        return "v{0}.{1}".format(self.major, self.minor)

class ResourceInterface(ABC):
    """
    the contract that every node in a resource chain--the primary resource as well as every
    decorator around it--implements.  A caller holding the head of a chain invokes these
    operations on it exactly as it would on an undecorated resource.

    Operations either return a result or raise one of the
    :py:mod:`~rescore.resource.exceptions` error kinds.
    """

    @abstractmethod
    def data_provider_factory(self) -> DataProvider:
        """
        create and return a new data provider for this resource
        """
        raise NotImplementedError()

    @abstractmethod
    def get_account(self, cache: bool=True) -> Account:
        """
        return the account acting on this resource.  ``cache`` is a hint that a previously
        resolved account may be returned.
        """
        raise NotImplementedError()

    @abstractmethod
    def get_request(self) -> Request:
        raise NotImplementedError()

    @abstractmethod
    def set_request(self, request: Request):
        raise NotImplementedError()

    @abstractmethod
    def get_path(self) -> str:
        """
        return the resource-relative path currently being resolved
        """
        raise NotImplementedError()

    @abstractmethod
    def set_path(self, path: str):
        raise NotImplementedError()

    @abstractmethod
    def get_field_definitions(self) -> Mapping:
        """
        return the ordered mapping of public field names to
        :py:class:`~rescore.resource.fields.ResourceField` instances
        """
        raise NotImplementedError()

    @abstractmethod
    def get_data_provider(self) -> DataProvider:
        raise NotImplementedError()

    @abstractmethod
    def get_resource_name(self) -> str:
        """
        return the human-readable name of the resource (e.g. "articles:1.0")
        """
        raise NotImplementedError()

    @abstractmethod
    def get_resource_machine_name(self) -> str:
        """
        return the machine-stable name of the resource (e.g. "articles")
        """
        raise NotImplementedError()

    @abstractmethod
    def process(self):
        """
        route the current request to the appropriate controller and return its result
        """
        raise NotImplementedError()

    @abstractmethod
    def controllers_info(self) -> Mapping:
        """
        return the static mapping of path patterns to the controllers allowed for each
        HTTP method
        """
        raise NotImplementedError()

    @abstractmethod
    def get_controllers(self) -> Mapping:
        raise NotImplementedError()

    @abstractmethod
    def index(self, path: str):
        raise NotImplementedError()

    @abstractmethod
    def view(self, path: str):
        raise NotImplementedError()

    @abstractmethod
    def create(self, path: str):
        raise NotImplementedError()

    @abstractmethod
    def update(self, path: str):
        raise NotImplementedError()

    @abstractmethod
    def replace(self, path: str):
        raise NotImplementedError()

    @abstractmethod
    def remove(self, path: str):
        raise NotImplementedError()

    @abstractmethod
    def get_version(self) -> ResourceVersion:
        raise NotImplementedError()

    @abstractmethod
    def versioned_url(self, path: str='', options: Mapping=None, version_string: bool=True) -> str:
        """
        return a URL for a path under the resource's versioned namespace
        :param str     path:  the path relative to the resource
        :param dict options:  URL rendering options: ``absolute``, ``query``, ``fragment``
        :param bool version_string:  if False, the version segment is left out of the URL
        """
        raise NotImplementedError()

    @abstractmethod
    def get_configuration(self) -> Mapping:
        raise NotImplementedError()

    @abstractmethod
    def set_configuration(self, configuration: Mapping):
        """
        replace the resource's configuration wholesale
        """
        raise NotImplementedError()

    @abstractmethod
    def default_configuration(self) -> Mapping:
        """
        return the baseline configuration that applies before any override
        """
        raise NotImplementedError()

    @abstractmethod
    def calculate_dependencies(self) -> Set[str]:
        """
        return the names of other system objects that this resource's configuration depends on
        """
        raise NotImplementedError()

    @abstractmethod
    def access(self) -> bool:
        """
        return True if the current request may proceed.  A False return denies access; it is
        not an error.
        """
        raise NotImplementedError()

    @abstractmethod
    def get_controller_from_path(self, path: str=None, resource=None) -> Callable:
        """
        return the controller that handles the given path for the current request's method.
        :param str      path:  the resource-relative path; defaults to :py:meth:`get_path`
        :param ResourceInterface resource:  the resource whose controllers should be
                               consulted and whose controller method is returned; defaults to
                               the node this method was called on.
        """
        raise NotImplementedError()

    @abstractmethod
    def get_plugin_definition(self) -> Mapping:
        """
        return the static metadata describing the primary resource
        """
        raise NotImplementedError()

    @abstractmethod
    def enable(self):
        raise NotImplementedError()

    @abstractmethod
    def disable(self):
        raise NotImplementedError()

    @abstractmethod
    def is_enabled(self) -> bool:
        raise NotImplementedError()


class Resource(ResourceInterface):
    """
    the terminal implementation of the resource contract.  Subclasses provide their public
    fields via :py:meth:`public_fields` and, typically, their data via
    :py:meth:`data_provider_factory`.

    The plugin definition given at construction time is a dictionary that may include the
    following properties:

    ``resource``
        _str_ (required).  the machine name of the resource, used in URLs
    ``name``
        _str_.  the human-readable name; default: "<resource>:<major>.<minor>"
    ``major_version``, ``minor_version``
        _int_.  the API version of the resource; default: 1.0
    ``menu_item``
        _str_.  a path (relative to the base path) that replaces the versioned resource
        segment in URLs
    ``enabled``
        _bool_.  whether the resource starts out enabled; default: True

    The configuration recognizes the following parameters:

    ``base_path``
        _str_.  the path prefix for all resource URLs; default: "api"
    ``base_url``
        _str_.  the scheme and host to prefix to absolute URLs; default: ""
    ``range``
        _int_.  the number of records returned per page by :py:meth:`index`; default: 50
    ``authentication_optional``
        _bool_.  if False, anonymous requests are denied access; default: True
    ``allow_origin``
        _str_.  if set, requests with a different ``Origin`` header are denied access
    ``depends_on``
        _list_.  names of other system objects the resource depends on
    """

    DEFAULT_CONFIG = OrderedDict([
        ("base_path", "api"),
        ("base_url", ""),
        ("range", 50),
        ("authentication_optional", True),
        ("depends_on", [])
    ])

    def __init__(self, plugin_definition: Mapping, configuration: Mapping=None, log: Logger=None):
        """
        :param dict plugin_definition:  the static metadata describing this resource
        :param dict configuration:  configuration overrides to apply over the default
                                    configuration
        :param Logger log:  the Logger to send messages to; if not provided, one is created
                            based on the resource machine name.
        """
        if not isinstance(plugin_definition, Mapping) or not plugin_definition.get('resource'):
            raise ConfigurationException("Resource plugin definition is missing its 'resource' name",
                                         param="resource")
        self._definition = plugin_definition
        self._version = ResourceVersion(int(plugin_definition.get('major_version', 1)),
                                        int(plugin_definition.get('minor_version', 0)))
        self._enabled = bool(plugin_definition.get('enabled', True))

        if not log:
            log = logging.getLogger("rescore.resource").getChild(plugin_definition['resource'])
        self.log = log

        self._cfg = None
        self.set_configuration(merge_config(configuration, self.default_configuration()))

        self._request = Request()
        self._path = ''
        self._account = None
        self._controllers = None
        self._fields = process_public_fields(self.public_fields())
        self._data_provider = self.data_provider_factory()

    def public_fields(self) -> Mapping:
        """
        return the specifications of the public fields of this resource, as a mapping of public
        names to either :py:class:`~rescore.resource.fields.ResourceField` instances or
        dictionaries of ResourceField constructor arguments.  This default exposes only the
        ``id`` property.
        """
        return OrderedDict([("id", {"property": "id"})])

    def data_provider_factory(self) -> DataProvider:
        """
        create the data provider for this resource.  This default returns an empty
        :py:class:`~rescore.resource.dataprovider.InMemoryDataProvider`.
        """
        return InMemoryDataProvider()

    def get_account(self, cache: bool=True) -> Account:
        if cache and self._account:
            return self._account
        account = self.get_request().account
        if not account:
            account = Account.anonymous()
        self._account = account
        return account

    def get_request(self) -> Request:
        return self._request

    def set_request(self, request: Request):
        self._request = request
        self._account = None

    def get_path(self) -> str:
        return self._path

    def set_path(self, path: str):
        self._path = (path or '').strip('/')

    def get_field_definitions(self) -> Mapping:
        return self._fields

    def get_data_provider(self) -> DataProvider:
        return self._data_provider

    def get_resource_name(self) -> str:
        return self._definition.get('name') or \
            "{0}:{1}.{2}".format(self.get_resource_machine_name(), *self._version)

    def get_resource_machine_name(self) -> str:
        return self._definition['resource']

    def get_version(self) -> ResourceVersion:
        return self._version

    def get_plugin_definition(self) -> Mapping:
        return self._definition

    def get_configuration(self) -> Mapping:
        return self._cfg

    def set_configuration(self, configuration: Mapping):
        self._cfg = OrderedDict(configuration or [])

    def default_configuration(self) -> Mapping:
        return deepcopy(self.DEFAULT_CONFIG)

    def calculate_dependencies(self) -> Set[str]:
        return set(self._cfg.get('depends_on') or [])

    def enable(self):
        self._enabled = True

    def disable(self):
        self._enabled = False

    def is_enabled(self) -> bool:
        return self._enabled

    def access(self) -> bool:
        if not self.is_enabled():
            return False
        if not self._cfg.get('authentication_optional', True) and self.get_account().is_anonymous():
            return False
        origin = self._cfg.get('allow_origin')
        if origin and origin != '*' and self.get_request().get_header('Origin') != origin:
            return False
        return True

    def controllers_info(self) -> Mapping:
        return OrderedDict([
            ('', {
                Request.METHOD_GET: 'index',
                Request.METHOD_HEAD: 'index',
                Request.METHOD_POST: 'create'
            }),
            (r'^.*$', {
                Request.METHOD_GET: 'view',
                Request.METHOD_HEAD: 'view',
                Request.METHOD_PUT: 'replace',
                Request.METHOD_PATCH: 'update',
                Request.METHOD_DELETE: 'remove'
            })
        ])

    def get_controllers(self) -> Mapping:
        if self._controllers is None:
            self._controllers = self.controllers_info()
        return self._controllers

    def get_controller_from_path(self, path: str=None, resource: ResourceInterface=None) -> Callable:
        if path is None:
            path = self.get_path()
        if resource is None:
            resource = self
        method = resource.get_request().method

        for pattern, controllers in resource.get_controllers().items():
            if pattern != path and not (pattern and re.search(pattern, path)):
                continue
            if not controllers:
                raise Forbidden("Access to this path is not allowed: "+path)
            if method not in controllers:
                raise BadRequest("The http method {0} is not allowed for this path.".format(method))

            controller = controllers[method]
            if isinstance(controller, Mapping):
                access_cb = controller.get('access_callback')
                if access_cb and not access_cb(resource):
                    raise Forbidden("You do not have access to this path: "+path)
                controller = controller.get('callback')
            if isinstance(controller, str):
                controller = getattr(resource, controller, None)
            if not callable(controller):
                raise BadRequest("No valid controller for {0} on this path.".format(method))
            return controller

        return None

    def process(self):
        path = self.get_path()
        controller = self.get_controller_from_path(path)
        if controller is None:
            raise NotFound("No controller found for path: "+path)
        self.log.debug("Dispatching %s %s to %s", self.get_request().method, path,
                       getattr(controller, '__name__', str(controller)))
        return controller(path)

    def versioned_url(self, path: str='', options: Mapping=None, version_string: bool=True) -> str:
        opts = {'absolute': True}
        if options:
            opts.update(options)

        url = self._cfg.get('base_path', 'api').strip('/')
        if self._definition.get('menu_item'):
            url += '/' + self._definition['menu_item'].strip('/')
        else:
            if version_string:
                url += '/' + str(self._version)
            url += '/' + self.get_resource_machine_name()
        url = (url + '/' + (path or '').lstrip('/')).rstrip('/')

        if opts.get('absolute'):
            url = self._cfg.get('base_url', '').rstrip('/') + '/' + url
        if opts.get('query'):
            url += '?' + urlencode(opts['query'], doseq=True)
        if opts.get('fragment'):
            url += '#' + opts['fragment']
        return url

    # CRUD controllers

    def _ids_from_path(self, path: str) -> List[str]:
        ids = [i.strip() for i in (path or '').split(',') if i.strip()]
        if not ids:
            raise BadRequest("No record identifiers given in path")
        return ids

    def _requested_fields(self) -> List[str]:
        fields = self.get_request().get_query_param('fields')
        if not fields:
            return None
        names = [f.strip() for f in fields.split(',') if f.strip()]
        unknown = [f for f in names if f not in self.get_field_definitions()]
        if unknown:
            raise BadRequest("Unknown fields requested: "+", ".join(unknown))
        return names

    def render(self, record: Mapping) -> Mapping:
        """
        convert a data provider record into its public representation
        """
        fields = self.get_field_definitions()
        names = self._requested_fields() or list(fields.keys())
        return OrderedDict((name, fields[name].value(record)) for name in names)

    def _to_properties(self, data, replace: bool=False) -> Mapping:
        # map public field values onto data provider properties
        if not isinstance(data, Mapping):
            raise Unprocessable("Request body must be a JSON object")
        fields = self.get_field_definitions()
        out = OrderedDict()
        for name, val in data.items():
            fld = fields.get(name)
            if not fld:
                raise Unprocessable("Unknown field: "+name)
            if not fld.is_writable():
                raise Unprocessable("Field is read-only: "+name)
            out[fld.property] = val
        if replace:
            missing = [n for n, f in fields.items() if f.required and n not in data]
            if missing:
                raise Unprocessable("Missing required fields: "+", ".join(missing))
        return out

    def _to_property_pointer(self, pointer) -> str:
        # rewrite a JSON pointer into a public field as a pointer into the provider record
        if not isinstance(pointer, str) or not pointer.startswith('/'):
            raise Unprocessable("JSON Patch path must point into a field: "+str(pointer))
        parts = pointer[1:].split('/', 1)
        name = parts[0].replace('~1', '/').replace('~0', '~')
        fld = self.get_field_definitions().get(name)
        if not fld:
            raise Unprocessable("Unknown field: "+name)
        if not fld.is_writable():
            raise Unprocessable("Field is read-only: "+name)
        parts[0] = fld.property.replace('~', '~0').replace('/', '~1')
        return '/' + '/'.join(parts)

    def _to_patch(self, operations: List[Mapping]) -> List[Mapping]:
        # map the paths of JSON Patch operations from public field names onto provider properties
        out = []
        for op in operations:
            if not isinstance(op, Mapping):
                raise Unprocessable("JSON Patch operation must be a JSON object")
            op = OrderedDict(op)
            if 'path' not in op:
                raise Unprocessable("JSON Patch operation is missing its path")
            for key in ('path', 'from'):
                if key in op:
                    op[key] = self._to_property_pointer(op[key])
            out.append(op)
        return out

    def index(self, path: str):
        page = self.get_request().get_query_param('page', 1)
        try:
            page = int(page)
        except (TypeError, ValueError):
            raise BadRequest("Page parameter is not an integer: "+str(page))
        if page < 1:
            raise BadRequest("Page parameter must be a positive integer")
        limit = int(self._cfg.get('range', 50))
        recs = self.get_data_provider().index((page - 1) * limit, limit)
        return [self.render(r) for r in recs]

    def view(self, path: str):
        ids = self._ids_from_path(path)
        return [self.render(r) for r in self.get_data_provider().view_multiple(ids)]

    def create(self, path: str):
        data = self._to_properties(self.get_request().body, replace=True)
        rec = self.get_data_provider().create(data)
        self.log.debug("Created new %s record", self.get_resource_machine_name())
        return [self.render(rec)]

    def update(self, path: str):
        id = self._ids_from_path(path)[0]
        body = self.get_request().body
        if isinstance(body, list):
            rec = self.get_data_provider().patch(id, self._to_patch(body))
        else:
            rec = self.get_data_provider().update(id, self._to_properties(body))
        return [self.render(rec)]

    def replace(self, path: str):
        id = self._ids_from_path(path)[0]
        data = self._to_properties(self.get_request().body, replace=True)
        return [self.render(self.get_data_provider().update(id, data, replace=True))]

    def remove(self, path: str):
        for id in self._ids_from_path(path):
            self.get_data_provider().remove(id)
