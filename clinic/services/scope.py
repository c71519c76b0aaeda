"""
Tenancy scope resolution.

``resolve_scope`` turns an authenticated actor into the set of records it
may act upon: everything (``GLOBAL``), one hospital (``TENANT``) or only
its own records (``SELF``).  A tenant-scoped actor without a hospital gets
an empty scope, so listings come back empty instead of failing.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from django.db.models import Q, QuerySet

from clinic.models import Role, ELEVATED_ROLES, STAFF_ROLES

GLOBAL = 'global'
TENANT = 'tenant'
SELF = 'self'


@dataclass(frozen=True)
class Scope:
    kind: str
    hospital_id: Optional[int] = None
    user_id: Optional[int] = None

    @property
    def is_empty(self) -> bool:
        if self.kind == TENANT:
            return self.hospital_id is None
        if self.kind == SELF:
            return self.user_id is None
        return False

    def filter(self, qs: QuerySet, *, tenant_field: str = 'hospital_id',
               owner_fields: Iterable[str] = ()) -> QuerySet:
        """Narrow ``qs`` to the records this scope covers."""
        if self.is_empty:
            return qs.none()
        if self.kind == GLOBAL:
            return qs
        if self.kind == TENANT:
            return qs.filter(**{tenant_field: self.hospital_id})
        owner_fields = list(owner_fields)
        if not owner_fields:
            return qs.none()
        cond = Q()
        for field in owner_fields:
            cond |= Q(**{field: self.user_id})
        qs = qs.filter(cond)
        # OR across relations can repeat rows
        return qs.distinct() if len(owner_fields) > 1 else qs


def tenant_scope(actor) -> Scope:
    """The actor's own hospital, whatever its role."""
    return Scope(TENANT, hospital_id=getattr(actor, 'hospital_id', None))


def self_scope(actor) -> Scope:
    return Scope(SELF, user_id=getattr(actor, 'id', None))


def resolve_scope(actor) -> Scope:
    role = getattr(actor, 'role', None)
    if role in ELEVATED_ROLES:
        return Scope(GLOBAL)
    if role in STAFF_ROLES:
        return tenant_scope(actor)
    if role in (Role.PATIENT, Role.GUARDIAN):
        return self_scope(actor)
    # Unknown roles see nothing
    return Scope(SELF)
