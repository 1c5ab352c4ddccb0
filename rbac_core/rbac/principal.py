"""
The acting subject of an authorization question.

Users are owned by another service, so the RBAC core only needs their
identifier.  Anything exposing a `user_id` string is accepted;
`Principal` is the concrete value built from a verified token.
"""

from dataclasses import dataclass, field
from typing import Protocol, Union, runtime_checkable

from rbac_core.core.exceptions import InvalidUserIdentifierError


@runtime_checkable
class HasUserId(Protocol):
    @property
    def user_id(self) -> str: ...


@dataclass(frozen=True)
class Principal:
    user_id: str
    claims: dict = field(default_factory=dict, compare=False, hash=False)


UserRef = Union[HasUserId, str]


def resolve_user_id(user: UserRef) -> str:
    """Accept a principal or a bare identifier and return the identifier."""
    user_id = user if isinstance(user, str) else user.user_id
    if not user_id:
        raise InvalidUserIdentifierError()
    return str(user_id)
