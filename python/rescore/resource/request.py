"""
The request value that is handed to a resource.

A :py:class:`Request` captures what a resource needs to know about a client request: the path,
the HTTP method, the query parameters, the (decoded) body, the headers, and the acting
:py:class:`~rescore.resource.account.Account`.  Resources store and forward a Request; they do
not parse HTTP themselves.  :py:meth:`Request.from_wsgi` is provided as a convenience for
hosting systems built on WSGI.
"""
import json
from collections import OrderedDict
from collections.abc import Mapping
from urllib.parse import parse_qs
from wsgiref.headers import Headers

from .account import Account
from .exceptions import BadRequest

__all__ = [ "Request" ]

class Request(object):
    """
    a description of a client request on a resource
    """
    METHOD_HEAD = "HEAD"
    METHOD_OPTIONS = "OPTIONS"
    METHOD_GET = "GET"
    METHOD_POST = "POST"
    METHOD_PUT = "PUT"
    METHOD_PATCH = "PATCH"
    METHOD_DELETE = "DELETE"

    READ_ONLY_METHODS = (METHOD_GET, METHOD_HEAD, METHOD_OPTIONS)

    def __init__(self, path: str='', method: str=METHOD_GET, query: Mapping=None, body=None,
                 headers=None, account: Account=None):
        """
        create the request
        :param str   path:  the requested URL path
        :param str method:  the HTTP method (case-insensitive)
        :param dict query:  the query parameters; each value may either be a single value or
                            a list of values.
        :param      body:   the decoded request payload (typically a dict or list)
        :param   headers:   the request headers, given either as a dictionary or a list of
                            name-value pairs
        :param Account account:  the identity making the request; None for an anonymous client
        """
        self._path = path or ''
        self._method = (method or self.METHOD_GET).upper()
        self._query = OrderedDict()
        if query:
            for k, v in query.items():
                self._query[k] = list(v) if isinstance(v, (list, tuple)) else [v]
        self._body = body
        if isinstance(headers, Mapping):
            headers = list(headers.items())
        self._headers = Headers(list(headers or []))
        self._account = account

    @property
    def path(self) -> str:
        return self._path

    @property
    def method(self) -> str:
        return self._method

    @property
    def query(self) -> Mapping:
        """
        the query parameters as a dictionary mapping names to lists of values
        """
        return self._query

    @property
    def body(self):
        return self._body

    @property
    def headers(self) -> Headers:
        return self._headers

    @property
    def account(self) -> Account:
        return self._account

    def get_query_param(self, name: str, default=None):
        """
        return the last value given for a query parameter or ``default`` if it was not given
        """
        vals = self._query.get(name)
        if not vals:
            return default
        return vals[-1]

    def get_header(self, name: str, default=None):
        """
        return the value of a request header (matched case-insensitively)
        """
        return self._headers.get(name, default)

    def is_read_only(self) -> bool:
        """
        return True if the request's method does not alter data
        """
        return self._method in self.READ_ONLY_METHODS

    @classmethod
    def from_wsgi(cls, env: Mapping, account: Account=None):
        """
        create a Request from a WSGI environment.  The method can be overridden with the
        ``X-HTTP-Method-Override`` header.  A body with a JSON content type is decoded.

        :raises BadRequest:  if the body cannot be decoded
        """
        method = env.get('HTTP_X_HTTP_METHOD_OVERRIDE') or env.get('REQUEST_METHOD', 'GET')
        query = parse_qs(env.get('QUERY_STRING', ''))

        headers = []
        for key, val in env.items():
            if key.startswith('HTTP_'):
                headers.append((key[5:].replace('_', '-').title(), val))
        if env.get('CONTENT_TYPE'):
            headers.append(("Content-Type", env['CONTENT_TYPE']))

        body = None
        try:
            clen = int(env.get('CONTENT_LENGTH') or 0)
        except ValueError:
            clen = 0
        if clen > 0 and env.get('wsgi.input'):
            body = env['wsgi.input'].read(clen)
            if isinstance(body, bytes):
                body = body.decode('utf-8')
            if 'json' in env.get('CONTENT_TYPE', ''):
                try:
                    body = json.loads(body, object_pairs_hook=OrderedDict)
                except ValueError as ex:
                    raise BadRequest("Unable to parse body as JSON: "+str(ex))

        return cls(env.get('PATH_INFO', ''), method, query, body, headers, account)

    def __repr__(self):
        return "Request({0} {1})".format(self._method, self._path)
