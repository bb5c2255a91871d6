"""
a module defining the representation of the identity acting on a resource.
"""
from collections import OrderedDict
from typing import Iterable

PUBLIC_ACCOUNT_CLASS = "public"
ADMIN_ACCOUNT_CLASS = "admin"
ANONYMOUS_USER = "anonymous"

class Account(object):
    """
    a description of the identity (human or functional) that is making a request on a resource.
    An account has an identifier, the *actor*, and an *account class*, a classification that
    is typically assigned according to how the actor authenticated.  The account class is used
    for simple authorization decisions; e.g. the ``admin`` class bypasses rate limits.

    Authenticating the actor is not the concern of this class: an Account is created by the
    hosting system and attached to a :py:class:`~rescore.resource.request.Request`.
    """
    USER: str = "user"
    AUTO: str = "auto"  # for functional identities
    UNKN: str = ""
    PUBLIC: str = PUBLIC_ACCOUNT_CLASS
    ADMIN: str = ADMIN_ACCOUNT_CLASS
    ANONYMOUS: str = ANONYMOUS_USER

    def __init__(self, actor: str, actortype: str=USER, acctclass: str=None,
                 groups: Iterable[str]=None, **kwargs):
        """
        create an account
        :param str     actor:  the unique identifier for the actor (a "username")
        :param str actortype:  one of USER, AUTO, or UNKN, indicating the type of actor the
                               identifier represents
        :param str acctclass:  an account classification name (default: PUBLIC)
        :param list[str] groups:  names of permission groups the actor is a member of
        :param kwargs:  arbitrary key-value pairs that will be saved as custom properties
        """
        if actortype not in (self.USER, self.AUTO, self.UNKN):
            raise ValueError("Account: actortype not one of "+str((self.USER, self.AUTO, self.UNKN)))
        self._actor = actor or self.ANONYMOUS
        self._actor_type = actortype
        self._acctclass = acctclass or self.PUBLIC
        self._groups = frozenset(groups or [])
        self._md = OrderedDict((k,v) for k,v in kwargs.items() if v is not None)

    @classmethod
    def anonymous(cls):
        """
        return an Account representing an unauthenticated client
        """
        return cls(cls.ANONYMOUS, cls.UNKN)

    @property
    def actor(self) -> str:
        return self._actor

    @property
    def actor_type(self) -> str:
        return self._actor_type

    @property
    def account_class(self) -> str:
        return self._acctclass

    @property
    def groups(self) -> frozenset:
        return self._groups

    def get_prop(self, key, default=None):
        """
        return the value of a custom property attached to this account
        """
        return self._md.get(key, default)

    def is_anonymous(self) -> bool:
        return self._actor == self.ANONYMOUS

    def is_admin(self) -> bool:
        return self._acctclass == self.ADMIN

    def __eq__(self, other):
        if not isinstance(other, Account):
            return False
        return (self._actor, self._actor_type, self._acctclass) == \
               (other._actor, other._actor_type, other._acctclass)

    def __hash__(self):
        return hash((self._actor, self._actor_type, self._acctclass))

    def __str__(self):
        return "Account({0}:{1})".format(self._acctclass, self._actor)
