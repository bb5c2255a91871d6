"""
The interface to the data that backs a resource, along with a simple in-memory implementation.

A :py:class:`DataProvider` works in terms of records expressed as dictionaries keyed by
*property* names (as opposed to the public field names exposed by the resource).  The
:py:class:`InMemoryDataProvider` is provided primarily for testing purposes.
"""
from abc import ABC, abstractmethod
from collections import OrderedDict
from collections.abc import Mapping, MutableMapping
from copy import deepcopy
from typing import List, Iterable

from jsonpatch import JsonPatch, JsonPatchException, JsonPointerException

from .exceptions import NotFound, Unprocessable

__all__ = [ "DataProvider", "InMemoryDataProvider" ]

class DataProvider(ABC):
    """
    an abstract interface for accessing the records of a resource
    """

    @abstractmethod
    def count(self) -> int:
        """
        return the total number of records available
        """
        raise NotImplementedError()

    @abstractmethod
    def index(self, offset: int=0, limit: int=None) -> List[Mapping]:
        """
        return a list of records in a stable order
        :param int offset:  the number of records to skip
        :param int  limit:  the maximum number of records to return; if None, all remaining
                            records are returned
        """
        raise NotImplementedError()

    @abstractmethod
    def view(self, id: str) -> Mapping:
        """
        return the record with the given identifier
        :raises NotFound:  if the record does not exist
        """
        raise NotImplementedError()

    def view_multiple(self, ids: Iterable[str]) -> List[Mapping]:
        """
        return the records with the given identifiers, in the order requested
        :raises NotFound:  if any of the records do not exist
        """
        return [self.view(id) for id in ids]

    @abstractmethod
    def create(self, data: Mapping) -> Mapping:
        """
        create and return a new record initialized with the given data
        """
        raise NotImplementedError()

    @abstractmethod
    def update(self, id: str, data: Mapping, replace: bool=False) -> Mapping:
        """
        update the record with the given identifier and return the updated record
        :param str      id:  the identifier of the record to update
        :param dict   data:  the property values to set
        :param bool replace: if True, properties not given in ``data`` are removed
        :raises NotFound:  if the record does not exist
        """
        raise NotImplementedError()

    @abstractmethod
    def patch(self, id: str, operations: List[Mapping]) -> Mapping:
        """
        apply a list of JSON Patch operations to a record and return the updated record
        :raises NotFound:  if the record does not exist
        :raises Unprocessable:  if the operations cannot be applied
        """
        raise NotImplementedError()

    @abstractmethod
    def remove(self, id: str):
        """
        delete the record with the given identifier
        :raises NotFound:  if the record does not exist
        """
        raise NotImplementedError()

class InMemoryDataProvider(DataProvider):
    """
    a DataProvider that keeps its records in a dictionary.  Records are copied on the way in
    and on the way out so that callers cannot alter the stored data.
    """

    def __init__(self, records: Iterable[Mapping]=None, id_property: str='id'):
        """
        :param records:  the initial set of records; each must include the ``id_property``.
        :param str id_property:  the name of the record property holding the identifier
        """
        self._idprop = id_property
        self._db = OrderedDict()
        self._nextnum = 0
        for rec in (records or []):
            if self._idprop not in rec:
                raise ValueError("InMemoryDataProvider: record is missing its "+self._idprop)
            self._db[str(rec[self._idprop])] = deepcopy(rec)
            try:
                self._nextnum = max(self._nextnum, int(rec[self._idprop]))
            except (TypeError, ValueError):
                pass

    @property
    def id_property(self) -> str:
        return self._idprop

    def _mint_id(self):
        self._nextnum += 1
        while str(self._nextnum) in self._db:
            self._nextnum += 1
        return str(self._nextnum)

    def _get(self, id) -> MutableMapping:
        out = self._db.get(str(id))
        if out is None:
            raise NotFound("Record not found: "+str(id))
        return out

    def count(self) -> int:
        return len(self._db)

    def index(self, offset: int=0, limit: int=None) -> List[Mapping]:
        recs = list(self._db.values())[offset:]
        if limit is not None:
            recs = recs[:limit]
        return deepcopy(recs)

    def view(self, id: str) -> Mapping:
        return deepcopy(self._get(id))

    def create(self, data: Mapping) -> Mapping:
        rec = OrderedDict(deepcopy(data))
        id = rec.get(self._idprop)
        if id is None:
            id = self._mint_id()
        id = str(id)
        if id in self._db:
            raise Unprocessable("Record already exists: "+id)
        rec[self._idprop] = id
        self._db[id] = rec
        return deepcopy(rec)

    def update(self, id: str, data: Mapping, replace: bool=False) -> Mapping:
        rec = self._get(id)
        if replace:
            rec.clear()
        rec.update(deepcopy(data))
        rec[self._idprop] = str(id)
        return deepcopy(rec)

    def patch(self, id: str, operations: List[Mapping]) -> Mapping:
        rec = self._get(id)
        try:
            patched = JsonPatch(operations).apply(rec)
        except (JsonPatchException, JsonPointerException) as ex:
            raise Unprocessable("Unable to apply patch: "+str(ex))
        if not isinstance(patched, Mapping) or str(patched.get(self._idprop)) != str(id):
            raise Unprocessable("Patch may not remove or change the record identifier")
        self._db[str(id)] = OrderedDict(patched)
        return deepcopy(patched)

    def remove(self, id: str):
        self._get(id)
        del self._db[str(id)]
