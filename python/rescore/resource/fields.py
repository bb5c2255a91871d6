"""
Definitions of the public fields exposed by a resource.

A resource exposes its records through a set of *public fields*.  Each public field is described
by a :py:class:`ResourceField` that says where its value comes from: either a property of the
underlying record or a callback that computes it.  Process callbacks can then transform the value
before it is output.
"""
from collections import OrderedDict
from collections.abc import Mapping
from typing import Callable, Iterable

from rescore.base.config import ConfigurationException

__all__ = [ "ResourceField", "process_public_fields" ]

class ResourceField(object):
    """
    the definition of a single public field of a resource
    """

    def __init__(self, public_name: str, property: str=None, callback: Callable=None,
                 process_callbacks: Iterable[Callable]=None, required: bool=False):
        """
        :param str public_name:  the name of the field as exposed to clients
        :param str    property:  the name of the record property that holds the field's value;
                                 defaults to ``public_name`` unless ``callback`` is given.
        :param Callable callback:  a function that takes the record and returns the value; a
                                 field with a callback is read-only.
        :param process_callbacks:  functions applied, in order, to the value before output
        :param bool   required:  True if a value must be provided when a record is created
        """
        if not public_name:
            raise ValueError("ResourceField: public_name must be a non-empty string")
        if property is None and callback is None:
            property = public_name
        self.public_name = public_name
        self.property = property
        self.callback = callback
        self.process_callbacks = list(process_callbacks or [])
        self.required = required

    def is_writable(self) -> bool:
        return self.callback is None and bool(self.property)

    def value(self, record: Mapping):
        """
        extract the output value for this field from the given record
        """
        if self.callback:
            val = self.callback(record)
        else:
            val = record.get(self.property)
        for proc in self.process_callbacks:
            val = proc(val)
        return val

    def __repr__(self):
        return "ResourceField({0})".format(self.public_name)

def process_public_fields(fields: Mapping) -> Mapping:
    """
    convert a mapping of public field specifications into an ordered mapping of
    :py:class:`ResourceField` instances.  Each value may be a ResourceField already or a
    dictionary of ResourceField constructor arguments (sans ``public_name``).

    :raises ConfigurationException:  if a specification is of an unsupported type
    """
    out = OrderedDict()
    for name, spec in fields.items():
        if isinstance(spec, ResourceField):
            out[name] = spec
        elif spec is None:
            out[name] = ResourceField(name)
        elif isinstance(spec, Mapping):
            try:
                out[name] = ResourceField(name, **spec)
            except TypeError as ex:
                raise ConfigurationException("Bad field specification for {0}: {1}"
                                             .format(name, str(ex)), cause=ex, param=name)
        else:
            raise ConfigurationException("Unsupported field specification type for {0}: {1}"
                                         .format(name, type(spec)), param=name)
    return out
