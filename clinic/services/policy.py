"""
Access policy evaluation.

All authorization decisions are read from one table, ``POLICY``, keyed by
``(resource type, action)`` and then by role, with ``'*'`` as the
fallback role.  Each entry names a rule:

``ALLOW``
    any record of that type.
``TENANT``
    only records of the actor's own hospital.  An actor without a
    hospital is denied (and sees empty listings).
``OWNER``
    only records the actor owns: its own appointments, the patient
    records it is linked to as patient or guardian, its notifications.
``ASSIGNEE``
    only records the actor is the assigned staff member of.
``SCOPED``
    whatever :func:`clinic.services.scope.resolve_scope` yields for the
    actor: global, tenant or self.
``DENY``
    nothing.

``authorize`` answers a single yes/no question for a record (or a
:class:`Target` describing a record about to be created); ``visible``
applies the same table to a queryset for listings.  Neither touches the
request, so both are callable from tests and management commands.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from django.db.models import QuerySet

from clinic.exceptions import AuthorizationDenied
from clinic.models import (
    ELEVATED_ROLES, Appointment, Hospital, Notification, Patient, Prescription, Role, User,
)
from clinic.services.scope import GLOBAL, TENANT as TENANT_SCOPE, resolve_scope, self_scope, tenant_scope

logger = logging.getLogger(__name__)

ALLOW = 'allow'
TENANT = 'tenant'
OWNER = 'owner'
ASSIGNEE = 'assignee'
SCOPED = 'scoped'
DENY = 'deny'

# resource types
HOSPITAL = 'hospital'
STAFF = 'staff'
PATIENT = 'patient'
APPOINTMENT = 'appointment'
PRESCRIPTION = 'prescription'
NOTIFICATION = 'notification'

DEFAULT = '*'

SA = Role.SUPER_ADMIN
A = Role.ADMIN
HA = Role.HOSPITAL_ADMIN
D = Role.DOCTOR
T = Role.THERAPIST
S = Role.SUPPORT
P = Role.PATIENT
G = Role.GUARDIAN

_HOSPITAL_WRITE = {SA: ALLOW, A: ALLOW, HA: TENANT}
_PATIENT_READ = {SA: ALLOW, A: TENANT, DEFAULT: SCOPED}
_PATIENT_WRITE = {SA: ALLOW, P: DENY, G: DENY, DEFAULT: TENANT}
_APPOINTMENT_CHANGE = {SA: ALLOW, A: ALLOW, HA: ALLOW, DEFAULT: OWNER}
_APPOINTMENT_STAFF_ACTION = {SA: ALLOW, A: ALLOW, HA: TENANT, D: ASSIGNEE, T: ASSIGNEE}

POLICY: dict[tuple[str, str], dict[str, str]] = {
    # Other roles may browse hospitals and rosters to book appointments
    (HOSPITAL, 'list'): {HA: TENANT, DEFAULT: ALLOW},
    (HOSPITAL, 'read'): {HA: TENANT, DEFAULT: ALLOW},
    (HOSPITAL, 'create'): {SA: ALLOW, A: ALLOW, HA: ALLOW},
    (HOSPITAL, 'update'): _HOSPITAL_WRITE,
    (HOSPITAL, 'delete'): _HOSPITAL_WRITE,
    (HOSPITAL, 'set_admin'): {SA: ALLOW},

    (STAFF, 'list'): {HA: TENANT, DEFAULT: ALLOW},
    (STAFF, 'assign'): _HOSPITAL_WRITE,
    (STAFF, 'remove'): _HOSPITAL_WRITE,

    (PATIENT, 'list'): _PATIENT_READ,
    (PATIENT, 'read'): _PATIENT_READ,
    (PATIENT, 'create'): _PATIENT_WRITE,
    (PATIENT, 'update'): _PATIENT_WRITE,
    (PATIENT, 'delete'): _PATIENT_WRITE,
    (PATIENT, 'guardians'): _PATIENT_WRITE,

    (APPOINTMENT, 'create'): {DEFAULT: ALLOW},
    (APPOINTMENT, 'book_for'): {SA: ALLOW, A: ALLOW, P: DENY, G: DENY, DEFAULT: TENANT},
    (APPOINTMENT, 'list'): {DEFAULT: SCOPED},
    (APPOINTMENT, 'list_mine'): {DEFAULT: OWNER},
    (APPOINTMENT, 'list_assigned'): {DEFAULT: ASSIGNEE},
    (APPOINTMENT, 'cancel'): _APPOINTMENT_CHANGE,
    (APPOINTMENT, 'reschedule'): _APPOINTMENT_CHANGE,
    (APPOINTMENT, 'confirm'): _APPOINTMENT_STAFF_ACTION,
    (APPOINTMENT, 'complete'): _APPOINTMENT_STAFF_ACTION,

    # Prescriptions never cross tenants, super_admin included
    (PRESCRIPTION, 'create'): {DEFAULT: TENANT},
    (PRESCRIPTION, 'list'): {SA: TENANT, A: TENANT, DEFAULT: SCOPED},
    (PRESCRIPTION, 'delete'): {P: DENY, G: DENY, DEFAULT: TENANT},

    (NOTIFICATION, 'list'): {DEFAULT: OWNER},
    (NOTIFICATION, 'read'): {DEFAULT: OWNER},
    (NOTIFICATION, 'create'): {SA: ALLOW, A: ALLOW, P: DENY, G: DENY, DEFAULT: TENANT},
}


@dataclass(frozen=True)
class ResourceFields:
    """ORM lookups used when a rule is applied to a queryset."""
    tenant_field: str
    owner_fields: tuple = ()
    assignee_field: Optional[str] = None


RESOURCES = {
    HOSPITAL: ResourceFields('id'),
    STAFF: ResourceFields('hospital_id', ('id',)),
    PATIENT: ResourceFields('hospital_id', ('user_id', 'guardians')),
    APPOINTMENT: ResourceFields('hospital_id', ('patient_id',), 'staff_id'),
    PRESCRIPTION: ResourceFields('hospital_id', ('patient__user_id', 'patient__guardians')),
    NOTIFICATION: ResourceFields('recipient__hospital_id', ('recipient_id',)),
}

_MODEL_TYPES = {
    Hospital: HOSPITAL,
    User: STAFF,
    Patient: PATIENT,
    Appointment: APPOINTMENT,
    Prescription: PRESCRIPTION,
    Notification: NOTIFICATION,
}


@dataclass(frozen=True)
class Target:
    """A record that does not exist yet, described by where it will live."""
    hospital_id: Optional[int]
    owner_id: Optional[int] = None


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str = ''

    def __bool__(self) -> bool:
        return self.allowed


ALLOWED = Decision(True)


def rule_for(actor, resource_type: str, action: str) -> str:
    rules = POLICY.get((resource_type, action))
    if rules is None:
        return DENY
    return rules.get(getattr(actor, 'role', None), rules.get(DEFAULT, DENY))


def picks_hospital(actor, resource_type: str, action: str = 'create') -> bool:
    """True when ``actor`` names the hospital itself instead of using its own."""
    return rule_for(actor, resource_type, action) == ALLOW


def adopts_created_hospital(actor) -> bool:
    """A creator outside super_admin without a hospital joins the one it creates."""
    return getattr(actor, 'role', None) != SA and getattr(actor, 'hospital_id', None) is None


def may_adopt_account(actor, account) -> bool:
    """Whether ``actor`` may turn an existing ``account`` into one of its hospital admins.

    Elevated accounts are never adopted.  Outside a global scope only the
    actor itself or accounts of the actor's own hospital qualify.
    """
    if getattr(account, 'role', None) in ELEVATED_ROLES:
        return False
    if resolve_scope(actor).kind == GLOBAL:
        return True
    if account.pk is not None and account.pk == getattr(actor, 'pk', None):
        return True
    hospital_id = getattr(actor, 'hospital_id', None)
    return hospital_id is not None and account.hospital_id == hospital_id


def _tenants(resource) -> set:
    if isinstance(resource, Hospital):
        return {resource.pk}
    tenants = {getattr(resource, 'hospital_id', None)}
    if isinstance(resource, User) and resource.pk is not None:
        # patients and guardians belong to the hospitals holding their records
        tenants.update(Patient.objects.filter(user=resource).values_list('hospital_id', flat=True))
        tenants.update(Patient.objects.filter(guardians=resource).values_list('hospital_id', flat=True))
    tenants.discard(None)
    return tenants


def _owns(actor, resource) -> bool:
    uid = getattr(actor, 'id', None)
    if uid is None:
        return False
    if isinstance(resource, Target):
        return resource.owner_id == uid
    if isinstance(resource, Appointment):
        return resource.patient_id == uid
    if isinstance(resource, Notification):
        return resource.recipient_id == uid
    if isinstance(resource, Patient):
        if resource.user_id == uid:
            return True
        return resource.pk is not None and resource.guardians.filter(pk=uid).exists()
    if isinstance(resource, Prescription):
        return resource.patient_id is not None and _owns(actor, resource.patient)
    if isinstance(resource, User):
        return resource.pk == uid
    return False


def _assigned(actor, resource) -> bool:
    uid = getattr(actor, 'id', None)
    return uid is not None and getattr(resource, 'staff_id', None) == uid


def _evaluate(rule: str, actor, resource) -> Decision:
    if rule == ALLOW:
        return ALLOWED
    if rule == TENANT:
        hospital_id = getattr(actor, 'hospital_id', None)
        if hospital_id is None:
            return Decision(False, 'No hospital assigned')
        if hospital_id in _tenants(resource):
            return ALLOWED
        return Decision(False, 'Resource belongs to another hospital')
    if rule == OWNER:
        return ALLOWED if _owns(actor, resource) else Decision(False, 'Not the owner of this resource')
    if rule == ASSIGNEE:
        return ALLOWED if _assigned(actor, resource) else Decision(False, 'Not assigned to this resource')
    if rule == SCOPED:
        scope = resolve_scope(actor)
        if scope.kind == GLOBAL:
            return ALLOWED
        if scope.kind == TENANT_SCOPE:
            return _evaluate(TENANT, actor, resource)
        return _evaluate(OWNER, actor, resource)
    return Decision(False, 'Forbidden')


def authorize(actor, action: str, resource, resource_type: Optional[str] = None) -> Decision:
    """Decide whether ``actor`` may perform ``action`` on ``resource``."""
    if actor is None or not getattr(actor, 'is_authenticated', False):
        return Decision(False, 'Unauthenticated')
    if resource_type is None:
        resource_type = _MODEL_TYPES.get(type(resource))
    if resource_type is None:
        return Decision(False, 'Unknown resource')
    rule = rule_for(actor, resource_type, action)
    if rule == DENY:
        return Decision(False, f"Role '{getattr(actor, 'role', None)}' may not {action} {resource_type}")
    return _evaluate(rule, actor, resource)


def enforce(actor, action: str, resource, resource_type: Optional[str] = None) -> None:
    """Like :func:`authorize` but raises :class:`AuthorizationDenied` on deny."""
    decision = authorize(actor, action, resource, resource_type)
    if not decision:
        logger.info('policy deny: user=%s role=%s action=%s type=%s reason=%s',
                    getattr(actor, 'id', None), getattr(actor, 'role', None), action,
                    resource_type or _MODEL_TYPES.get(type(resource)), decision.reason)
        raise AuthorizationDenied(decision.reason)


def visible(actor, resource_type: str, qs: QuerySet, action: str = 'list') -> QuerySet:
    """Restrict ``qs`` to what the ``action`` rule lets ``actor`` see."""
    fields = RESOURCES[resource_type]
    rule = rule_for(actor, resource_type, action)
    if rule == SCOPED:
        return resolve_scope(actor).filter(qs, tenant_field=fields.tenant_field,
                                           owner_fields=fields.owner_fields)
    if rule == ALLOW:
        return qs
    if rule == TENANT:
        return tenant_scope(actor).filter(qs, tenant_field=fields.tenant_field)
    if rule == OWNER:
        return self_scope(actor).filter(qs, owner_fields=fields.owner_fields)
    if rule == ASSIGNEE and fields.assignee_field:
        return self_scope(actor).filter(qs, owner_fields=(fields.assignee_field,))
    return qs.none()
