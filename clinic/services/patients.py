"""
Patient record management.

Which hospital a new record lands in is decided by the access policy:
roles allowed to create patients anywhere must name the hospital, every
other role writes into its own.
"""
from __future__ import annotations

import logging

from django.db import transaction
from django.db.models import Count, IntegerField, OuterRef, Q, Subquery
from django.db.models.functions import Coalesce
from rest_framework.exceptions import ValidationError

from clinic.models import Appointment, Hospital, Patient, Role, User
from clinic.services import policy
from clinic.services.audit import log_action
from clinic.services.records import fetch

logger = logging.getLogger(__name__)

PATIENT_FIELDS = ('name', 'email', 'phone', 'dob', 'gender', 'address', 'medical_history', 'metadata')


def serialize_patient(p: Patient) -> dict:
    return {
        'id': p.pk,
        'hospital_id': p.hospital_id,
        'user_id': p.user_id,
        'guardian_ids': sorted(g.pk for g in p.guardians.all()),
        'name': p.name,
        'email': p.email,
        'phone': p.phone,
        'dob': p.dob.isoformat() if p.dob else None,
        'gender': p.gender,
        'address': p.address,
        'medical_history': p.medical_history,
        'metadata': p.metadata,
        'created_at': p.created_at.isoformat() if p.created_at else None,
        'updated_at': p.updated_at.isoformat() if p.updated_at else None,
    }


def list_patients(actor, *, hospital_id=None, q=None):
    qs = Patient.objects.prefetch_related('guardians').order_by('-created_at', '-id')
    qs = policy.visible(actor, policy.PATIENT, qs)
    if hospital_id:
        qs = qs.filter(hospital_id=hospital_id)
    if q:
        qs = qs.filter(Q(name__icontains=q) | Q(phone__icontains=q) | Q(email__icontains=q))
    return qs


def get_patient(actor, pk) -> Patient:
    p = fetch(Patient, pk, 'Patient')
    policy.enforce(actor, 'read', p)
    return p


def _linked_user(user_id):
    if user_id is None:
        return None
    u = fetch(User, user_id, 'User')
    if u.role != Role.PATIENT:
        raise ValidationError({'user_id': 'Linked user is not a patient'})
    return u


def _target_hospital(actor, hospital_id) -> Hospital:
    if policy.picks_hospital(actor, policy.PATIENT):
        if not hospital_id:
            raise ValidationError({'hospital_id': 'hospital_id is required'})
    else:
        hospital_id = getattr(actor, 'hospital_id', None)
    policy.enforce(actor, 'create', policy.Target(hospital_id), policy.PATIENT)
    return fetch(Hospital, hospital_id, 'Hospital')


def list_patients_with_records(actor, *, hospital_id=None, q=None):
    """Visible patients annotated with ``appointment_count`` and ``last_appointment``.

    Appointments are matched through the linked login within the record's
    own hospital; records without a login have none.
    """
    appts = Appointment.objects.filter(patient_id=OuterRef('user_id'), hospital_id=OuterRef('hospital_id'))
    counts = appts.order_by().values('patient_id').annotate(n=Count('id')).values('n')
    latest = appts.order_by('-start_time').values('start_time')[:1]
    return list_patients(actor, hospital_id=hospital_id, q=q).annotate(
        appointment_count=Coalesce(Subquery(counts, output_field=IntegerField()), 0),
        last_appointment=Subquery(latest),
    )


def serialize_patient_record(p: Patient) -> dict:
    last = p.last_appointment
    return {
        'patient': serialize_patient(p),
        'appointment_count': p.appointment_count,
        'last_appointment': last.isoformat() if last else None,
    }


@transaction.atomic
def sync_from_appointments(actor, *, hospital_id=None) -> list[Patient]:
    """Create a record for every patient booked at the hospital that has none there yet."""
    hospital = _target_hospital(actor, hospital_id)
    known = Patient.objects.filter(hospital=hospital, user__isnull=False).values('user_id')
    booked = (User.objects
              .filter(patient_appointments__hospital=hospital)
              .exclude(pk__in=known)
              .distinct()
              .order_by('id'))
    created = [
        Patient.objects.create(hospital=hospital, user=u, name=u.display_name,
                               email=u.email or '', phone=u.phone or '')
        for u in booked
    ]
    log_action(user=actor, action='patient.sync', object_type='hospital', object_id=hospital.pk,
               detail={'created': [p.pk for p in created]})
    logger.info('synced %d patient records for hospital %s', len(created), hospital.pk)
    return created


def create_patient(actor, data: dict) -> Patient:
    hospital = _target_hospital(actor, data.get('hospital_id'))
    p = Patient(hospital=hospital, user=_linked_user(data.get('user_id')))
    for k in PATIENT_FIELDS:
        if k in data and data[k] is not None:
            setattr(p, k, data[k])
    p.save()
    log_action(user=actor, action='patient.create', object_type='patient', object_id=p.pk,
               detail={'hospital_id': hospital.pk})
    return p


def update_patient(actor, pk, data: dict) -> Patient:
    p = fetch(Patient, pk, 'Patient')
    policy.enforce(actor, 'update', p)
    new_hospital = data.get('hospital_id')
    if new_hospital and new_hospital != p.hospital_id:
        if not policy.picks_hospital(actor, policy.PATIENT, 'update'):
            raise ValidationError('Cannot change hospital_id')
        p.hospital = fetch(Hospital, new_hospital, 'Hospital')
    if 'user_id' in data:
        p.user = _linked_user(data['user_id'])
    for k in PATIENT_FIELDS:
        if k in data:
            value = data[k]
            if value is None and k != 'dob':
                continue
            setattr(p, k, value)
    p.save()
    log_action(user=actor, action='patient.update', object_type='patient', object_id=p.pk,
               detail={'fields': sorted(data)})
    return p


def delete_patient(actor, pk) -> None:
    p = fetch(Patient, pk, 'Patient')
    policy.enforce(actor, 'delete', p)
    pid = p.pk
    p.delete()
    log_action(user=actor, action='patient.delete', object_type='patient', object_id=pid)


def _guardian(guardian_id) -> User:
    g = fetch(User, guardian_id, 'Guardian')
    if g.role != Role.GUARDIAN:
        raise ValidationError('User is not a guardian')
    return g


def add_guardian(actor, pk, guardian_id) -> Patient:
    p = fetch(Patient, pk, 'Patient')
    policy.enforce(actor, 'guardians', p)
    g = _guardian(guardian_id)
    p.guardians.add(g)
    log_action(user=actor, action='patient.guardian_add', object_type='patient', object_id=p.pk,
               detail={'guardian_id': g.pk})
    return p


def remove_guardian(actor, pk, guardian_id) -> Patient:
    p = fetch(Patient, pk, 'Patient')
    policy.enforce(actor, 'guardians', p)
    g = fetch(p.guardians.model, guardian_id, 'Guardian', qs=p.guardians.all())
    p.guardians.remove(g)
    log_action(user=actor, action='patient.guardian_remove', object_type='patient', object_id=p.pk,
               detail={'guardian_id': g.pk})
    return p
