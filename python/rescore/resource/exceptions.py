"""
The error kinds that resource operations may raise.

Each error kind corresponds to an HTTP status.  Beyond its status code and reason, an error can
carry a longer explanation and extra properties; together these can be rendered as a
JSON-formatted error object via :py:meth:`ResourceException.to_dict` or
:py:meth:`ResourceException.to_json`.  Such an object contains at least the following
properties:

``http:status``
     the HTTP status number (e.g. 404, 422, etc.) indicating the type of error that occurred.

``http:reason``
     the text briefly describing the error that occurred.

``message``
     a longer message explaining what went wrong.

The function :py:func:`is_error_msg` can be used to recognize an object conforming to this model.
"""
import json
from collections import OrderedDict
from collections.abc import Mapping

from rescore.base import RescoreException

__all__ = [ "ResourceException", "BadRequest", "Forbidden", "NotFound", "Unprocessable",
            "TooManyRequests", "InternalError", "is_error_msg", "make_message" ]

def is_error_msg(msgobj: Mapping):
    """
    return True if the given dictionary represents a JSON-formatted error message
    """
    if not isinstance(msgobj, Mapping):
        return False
    return "http:status" in msgobj and "message" in msgobj

def make_message(code: int, reason: str, message: str=None, extra: Mapping=None):
    """
    create a compliant error message object from the inputs
    """
    out = OrderedDict([
        ("http:status", code),
        ("http:reason", reason),
        ("message", message or reason)
    ])
    if extra:
        for k,v in extra.items():
            out[k] = v
    return out

class ResourceException(RescoreException):
    """
    a base exception for failures of resource operations.  An instance carries the HTTP status
    that a web layer should respond with.
    """
    code = 500
    reason = "Internal Server Error"

    def __init__(self, explain=None, extra=None, code: int=None, reason: str=None):
        """
        :param str explain:  the more extensive explanation as to the reason for the error
        :param dict  extra:  a dictionary of additional properties to include in the output
                             message object.
        :param int    code:  the HTTP code to respond with; if not provided, the default for
                             the class is used.
        :param str  reason:  the reason to return as the HTTP status message; if not provided,
                             the default for the class is used.
        """
        if code is not None:
            self.code = code
        if reason:
            self.reason = reason
        if not explain:
            explain = self.reason
        super(ResourceException, self).__init__(explain)
        self.explain = explain
        self.data = extra

    def data_update(self, props: Mapping):
        """
        add or update the extra data attached to this exception
        """
        if self.data is None:
            self.data = OrderedDict()
        self.data.update(props)

    def to_dict(self):
        return make_message(self.code, self.reason, self.explain, self.data)

    def to_json(self, indent=None):
        return json.dumps(self.to_dict(), indent=indent)

class BadRequest(ResourceException):
    """
    the request cannot be handled as made (e.g. the HTTP method is not allowed on the path)
    """
    code = 400
    reason = "Bad Request"

class Forbidden(ResourceException):
    """
    the acting account is not permitted to make the request
    """
    code = 403
    reason = "Forbidden"

class NotFound(ResourceException):
    """
    the requested path, controller, or record could not be resolved
    """
    code = 404
    reason = "Not Found"

class Unprocessable(ResourceException):
    """
    the request's payload is invalid
    """
    code = 422
    reason = "Unprocessable Entity"

class TooManyRequests(ResourceException):
    """
    the acting account has exceeded its allowed number of requests
    """
    code = 429
    reason = "Too Many Requests"

class InternalError(ResourceException):
    """
    an unexpected failure occurred within a collaborator
    """
    code = 500
    reason = "Internal Server Error"
