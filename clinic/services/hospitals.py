"""
Hospital tenants and their staff rosters.

Creating a hospital may also set up its administrator account: either a
new ``hospital_admin`` user or an existing account moved onto the new
hospital.  The hospital row and its admin are written in one transaction.
A super_admin can later add or reassign the admin of any hospital.
"""
from __future__ import annotations

import logging

from django.db import transaction
from rest_framework.exceptions import NotFound, ValidationError

from clinic.exceptions import Conflict
from clinic.models import ROSTER_ROLES, STAFF_ROLES, Hospital, Role, User
from clinic.services import policy
from clinic.services.audit import log_action
from clinic.services.records import fetch
from clinic.services.users import create_account

logger = logging.getLogger(__name__)

HOSPITAL_FIELDS = ('name', 'email', 'phone', 'address', 'city', 'description')


def serialize_hospital(h: Hospital) -> dict:
    return {
        'id': h.pk,
        'name': h.name,
        'email': h.email,
        'phone': h.phone,
        'address': h.address,
        'city': h.city,
        'description': h.description,
        'created_at': h.created_at.isoformat() if h.created_at else None,
        'updated_at': h.updated_at.isoformat() if h.updated_at else None,
    }


def list_hospitals(actor):
    return policy.visible(actor, policy.HOSPITAL, Hospital.objects.order_by('name', 'id'))


def get_hospital(actor, pk) -> Hospital:
    h = fetch(Hospital, pk, 'Hospital')
    policy.enforce(actor, 'read', h)
    return h


def _adopt_admin(actor, h: Hospital, account: User) -> User:
    """Make an existing ``account`` an administrator of ``h``.

    Credentials of the account are never touched.
    """
    if not policy.may_adopt_account(actor, account):
        raise Conflict('Account cannot be made admin of this hospital')
    previous = account.hospital_id
    account.role = Role.HOSPITAL_ADMIN
    account.hospital = h
    account.save(update_fields=['role', 'hospital'])
    log_action(user=actor, action='hospital.admin_assign', object_type='user', object_id=account.pk,
               detail={'hospital_id': h.pk, 'previous_hospital_id': previous})
    return account


def _setup_admin(actor, h: Hospital, *, email, password, name='', phone=None) -> User:
    existing = User.objects.filter(email=email.strip().lower()).first()
    if existing is not None:
        return _adopt_admin(actor, h, existing)
    if not password:
        raise ValidationError({'admin_password': 'Required to create the hospital admin'})
    return create_account(password=password, role=Role.HOSPITAL_ADMIN, full_name=name,
                          email=email, phone=phone, hospital=h)


@transaction.atomic
def create_hospital(actor, data: dict) -> tuple[Hospital, User | None]:
    policy.enforce(actor, 'create', policy.Target(None), policy.HOSPITAL)
    h = Hospital.objects.create(**{k: data[k] for k in HOSPITAL_FIELDS if k in data})
    if policy.adopts_created_hospital(actor):
        actor.hospital = h
        actor.save(update_fields=['hospital'])
    admin = None
    if data.get('admin_email'):
        admin = _setup_admin(actor, h, email=data['admin_email'], password=data.get('admin_password'),
                             name=data.get('admin_name', ''), phone=data.get('admin_phone'))
    log_action(user=actor, action='hospital.create', object_type='hospital', object_id=h.pk,
               detail={'admin_id': getattr(admin, 'pk', None)})
    logger.info('hospital %s created by user %s', h.pk, actor.pk)
    return h, admin


def update_hospital(actor, pk, data: dict) -> Hospital:
    h = fetch(Hospital, pk, 'Hospital')
    policy.enforce(actor, 'update', h)
    for k in HOSPITAL_FIELDS:
        if k in data:
            setattr(h, k, data[k])
    h.save()
    log_action(user=actor, action='hospital.update', object_type='hospital', object_id=h.pk,
               detail={'fields': sorted(k for k in data if k in HOSPITAL_FIELDS)})
    return h


@transaction.atomic
def delete_hospital(actor, pk) -> None:
    h = fetch(Hospital, pk, 'Hospital')
    policy.enforce(actor, 'delete', h)
    hid = h.pk
    # staff accounts outlive the tenant but must not keep working without one
    retired = User.objects.filter(hospital=h, role__in=STAFF_ROLES).update(is_active=False)
    h.delete()
    log_action(user=actor, action='hospital.delete', object_type='hospital', object_id=hid,
               detail={'deactivated_staff': retired})
    logger.info('hospital %s deleted by user %s', hid, actor.pk)


def create_hospital_admin(actor, pk, data: dict) -> User:
    """Create a fresh ``hospital_admin`` account for an existing hospital."""
    h = fetch(Hospital, pk, 'Hospital')
    policy.enforce(actor, 'set_admin', h)
    admin = create_account(password=data['password'], role=Role.HOSPITAL_ADMIN,
                           full_name=data.get('full_name', ''), email=data['email'],
                           phone=data.get('phone'), hospital=h)
    log_action(user=actor, action='hospital.admin_create', object_type='user', object_id=admin.pk,
               detail={'hospital_id': h.pk})
    logger.info('hospital %s got admin %s from user %s', h.pk, admin.pk, actor.pk)
    return admin


@transaction.atomic
def reassign_hospital_admin(actor, pk, data: dict) -> User:
    """Point an existing account at ``pk`` as its administrator.

    The account is named by ``user_id`` or ``email``.  Other admins of the
    hospital keep their role.
    """
    h = fetch(Hospital, pk, 'Hospital')
    policy.enforce(actor, 'set_admin', h)
    if data.get('user_id'):
        account = fetch(User, data['user_id'], 'User')
    else:
        account = User.objects.filter(email=data['email'].strip().lower()).first()
        if account is None:
            raise NotFound('User not found')
    return _adopt_admin(actor, h, account)


def list_staff(actor, hospital_pk):
    h = fetch(Hospital, hospital_pk, 'Hospital')
    policy.enforce(actor, 'list', h, policy.STAFF)
    return User.objects.filter(hospital=h, role__in=ROSTER_ROLES).order_by('role', 'full_name', 'id')


def assign_staff(actor, hospital_pk, data: dict) -> User:
    """Create a doctor/therapist/support account on ``hospital_pk``'s roster.

    The hospital always comes from the path; any ``hospital_id`` in the
    body is ignored.
    """
    h = fetch(Hospital, hospital_pk, 'Hospital')
    policy.enforce(actor, 'assign', h, policy.STAFF)
    user = create_account(
        password=data['password'], role=data['role'], full_name=data.get('full_name', ''),
        email=data.get('email'), phone=data.get('phone'), username=data.get('username'),
        hospital=h, department=data.get('department', ''),
    )
    log_action(user=actor, action='staff.assign', object_type='user', object_id=user.pk,
               detail={'hospital_id': h.pk, 'role': user.role})
    return user


def remove_staff(actor, hospital_pk, user_pk) -> None:
    h = fetch(Hospital, hospital_pk, 'Hospital')
    policy.enforce(actor, 'remove', h, policy.STAFF)
    user = fetch(User, user_pk, 'User')
    if user.role not in ROSTER_ROLES:
        raise ValidationError('Can only remove doctor/therapist/support')
    if user.hospital_id != h.pk:
        raise ValidationError('User does not belong to this hospital')
    uid = user.pk
    user.delete()
    log_action(user=actor, action='staff.remove', object_type='user', object_id=uid,
               detail={'hospital_id': h.pk})
