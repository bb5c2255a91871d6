"""
The base class for resource decorators.

A decorator wraps exactly one other node implementing
:py:class:`~rescore.resource.base.ResourceInterface`--its *subject*--and implements the same
interface itself.  :py:class:`ResourceDecoratorBase` forwards every operation to the subject
unchanged; a concrete decorator overrides only the operations whose behavior it changes.
"""
from abc import abstractmethod
from collections.abc import Mapping
from typing import Callable, Set

from ..base import ResourceInterface, ResourceVersion
from ..account import Account
from ..request import Request
from ..dataprovider import DataProvider

__all__ = [ "ResourceDecoratorInterface", "ResourceDecoratorBase" ]

class ResourceDecoratorInterface(ResourceInterface):
    """
    the interface for a resource node that wraps another
    """

    @abstractmethod
    def get_decorated_resource(self) -> ResourceInterface:
        """
        return the node that this decorator wraps
        """
        raise NotImplementedError()

    @abstractmethod
    def get_primary_resource(self) -> ResourceInterface:
        """
        return the terminal, non-decorator resource reached by unwrapping this decorator's
        subjects
        """
        raise NotImplementedError()

class ResourceDecoratorBase(ResourceDecoratorInterface):
    """
    a decorator that passes every operation through to its subject.  This class can be used
    as is (as a pure pass-through) but is intended to be subclassed.

    The subject is set at construction and cannot be changed.  Errors raised by the subject
    propagate unchanged.
    """

    def __init__(self, subject: ResourceInterface):
        """
        :param ResourceInterface subject:  the resource node to wrap
        :raises TypeError:  if ``subject`` does not implement the resource interface
        """
        if not isinstance(subject, ResourceInterface):
            raise TypeError("Decorator subject is not a ResourceInterface: "+repr(subject))
        self._subject = subject

    @property
    def subject(self) -> ResourceInterface:
        """
        the resource node wrapped by this decorator
        """
        return self._subject

    def get_decorated_resource(self) -> ResourceInterface:
        return self._subject

    def get_primary_resource(self) -> ResourceInterface:
        resource = self.get_decorated_resource()
        while isinstance(resource, ResourceDecoratorInterface):
            resource = resource.get_decorated_resource()
        return resource

    def data_provider_factory(self) -> DataProvider:
        return self._subject.data_provider_factory()

    def get_account(self, cache: bool=True) -> Account:
        """
        return the account acting on the resource.  The cache hint is not honored here: the
        account is always resolved anew by the subject.  Subclasses that want caching must
        override this method.
        """
        return self._subject.get_account(False)

    def get_request(self) -> Request:
        return self._subject.get_request()

    def set_request(self, request: Request):
        self._subject.set_request(request)

    def get_path(self) -> str:
        return self._subject.get_path()

    def set_path(self, path: str):
        self._subject.set_path(path)

    def get_field_definitions(self) -> Mapping:
        return self._subject.get_field_definitions()

    def get_data_provider(self) -> DataProvider:
        return self._subject.get_data_provider()

    def get_resource_name(self) -> str:
        return self._subject.get_resource_name()

    def get_resource_machine_name(self) -> str:
        return self._subject.get_resource_machine_name()

    def process(self):
        return self._subject.process()

    def controllers_info(self) -> Mapping:
        return self._subject.controllers_info()

    def get_controllers(self) -> Mapping:
        return self._subject.get_controllers()

    def index(self, path: str):
        return self._subject.index(path)

    def view(self, path: str):
        return self._subject.view(path)

    def create(self, path: str):
        return self._subject.create(path)

    def update(self, path: str):
        return self._subject.update(path)

    def replace(self, path: str):
        return self._subject.replace(path)

    def remove(self, path: str):
        self._subject.remove(path)

    def get_version(self) -> ResourceVersion:
        return self._subject.get_version()

    def versioned_url(self, path: str='', options: Mapping=None, version_string: bool=True) -> str:
        return self._subject.versioned_url(path, options, version_string)

    def get_configuration(self) -> Mapping:
        return self._subject.get_configuration()

    def set_configuration(self, configuration: Mapping):
        self._subject.set_configuration(configuration)

    def default_configuration(self) -> Mapping:
        return self._subject.default_configuration()

    def calculate_dependencies(self) -> Set[str]:
        return self._subject.calculate_dependencies()

    def access(self) -> bool:
        return self._subject.access()

    def get_controller_from_path(self, path: str=None, resource: ResourceInterface=None) -> Callable:
        """
        return the controller that handles the given path.  If ``resource`` is not given, this
        decorator--not its subject--is passed down as the resource to resolve against, so that
        the returned controller runs through this decorator and any behavior it adds.
        """
        if resource is None:
            resource = self
        return self._subject.get_controller_from_path(path, resource)

    def get_plugin_definition(self) -> Mapping:
        return self._subject.get_plugin_definition()

    def enable(self):
        self._subject.enable()

    def disable(self):
        self._subject.disable()

    def is_enabled(self) -> bool:
        return self._subject.is_enabled()
