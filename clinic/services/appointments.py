"""
Appointment booking and lifecycle.

Status changes go through :func:`transition`, which reads the allowed
moves from :attr:`Appointment.TRANSITIONS`; cancelled and completed
appointments never change again.
"""
from __future__ import annotations

import logging

from django.db import transaction
from rest_framework.exceptions import ValidationError

from clinic.models import CLINICIAN_ROLES, Appointment, Hospital, Role, User
from clinic.services import policy
from clinic.services.audit import log_action
from clinic.services.records import fetch

logger = logging.getLogger(__name__)


def serialize_appointment(a: Appointment) -> dict:
    return {
        'id': a.pk,
        'hospital_id': a.hospital_id,
        'patient_id': a.patient_id,
        'patient_name': a.patient.display_name if a.patient_id else None,
        'staff_id': a.staff_id,
        'staff_name': a.staff.display_name if a.staff_id else None,
        'type': a.type,
        'start_time': a.start_time.isoformat(),
        'end_time': a.end_time.isoformat(),
        'status': a.status,
        'notes': a.notes,
        'created_at': a.created_at.isoformat() if a.created_at else None,
        'updated_at': a.updated_at.isoformat() if a.updated_at else None,
    }


def _base_qs():
    return Appointment.objects.select_related('patient', 'staff')


def book(actor, data: dict) -> Appointment:
    """Book ``data['staff_id']`` at ``data['hospital_id']``.

    The caller is the patient unless an office role passes ``patient_id``.
    The stored type is always the staff member's role.
    """
    hospital = fetch(Hospital, data['hospital_id'], 'Hospital')
    staff = fetch(User, data['staff_id'], 'Staff')
    if staff.role not in CLINICIAN_ROLES:
        raise ValidationError('Selected user is not a doctor/therapist')
    if staff.hospital_id != hospital.pk:
        raise ValidationError('Staff does not belong to this hospital')
    patient = actor
    patient_id = data.get('patient_id')
    if patient_id and patient_id != actor.pk:
        policy.enforce(actor, 'book_for', policy.Target(hospital.pk), policy.APPOINTMENT)
        patient = fetch(User, patient_id, 'Patient')
        if patient.role != Role.PATIENT:
            raise ValidationError('Selected user is not a patient')
    policy.enforce(actor, 'create', policy.Target(hospital.pk, owner_id=patient.pk), policy.APPOINTMENT)
    appt = Appointment.objects.create(
        hospital=hospital, patient=patient, staff=staff, type=staff.role,
        start_time=data['start_time'], end_time=data['end_time'],
        notes=data.get('notes', ''),
    )
    log_action(user=actor, action='appointment.create', object_type='appointment', object_id=appt.pk,
               detail={'staff_id': staff.pk, 'patient_id': patient.pk})
    return appt


def list_mine(actor):
    qs = policy.visible(actor, policy.APPOINTMENT, _base_qs(), 'list_mine')
    return qs.order_by('start_time', 'id')


def list_assigned(actor):
    qs = policy.visible(actor, policy.APPOINTMENT, _base_qs(), 'list_assigned')
    return qs.order_by('start_time', 'id')


def list_office(actor, *, status=None, hospital_id=None):
    qs = policy.visible(actor, policy.APPOINTMENT, _base_qs(), 'list')
    if status:
        qs = qs.filter(status=status)
    if hospital_id:
        qs = qs.filter(hospital_id=hospital_id)
    return qs.order_by('start_time', 'id')


def transition(appt: Appointment, event: str) -> Appointment:
    """Move ``appt`` along ``event`` or raise a 400 when the move is illegal."""
    sources, target = Appointment.TRANSITIONS[event]
    if appt.status not in sources:
        if appt.status in Appointment.TERMINAL_STATUSES:
            raise ValidationError(f'Cannot {event} a completed/cancelled appointment')
        raise ValidationError(f'Cannot {event} a {appt.status} appointment')
    appt.status = target
    return appt


def change(actor, pk, event: str, *, start_time=None, end_time=None) -> Appointment:
    """Apply ``event`` (cancel, reschedule, confirm or complete) to appointment ``pk``."""
    with transaction.atomic():
        appt = fetch(Appointment, pk, 'Appointment', qs=Appointment.objects.select_for_update())
        policy.enforce(actor, event, appt)
        previous = appt.status
        transition(appt, event)
        if event == 'reschedule':
            appt.start_time = start_time
            appt.end_time = end_time
        appt.save()
    log_action(user=actor, action=f'appointment.{event}', object_type='appointment', object_id=appt.pk,
               detail={'from': previous, 'to': appt.status})
    logger.info('appointment %s %s -> %s by user %s', appt.pk, previous, appt.status, actor.pk)
    return appt
