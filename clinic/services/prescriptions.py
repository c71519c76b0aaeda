"""Prescriptions: written once by hospital staff, never edited."""
from __future__ import annotations

from django.utils import timezone

from clinic.models import Patient, Prescription
from clinic.services import policy
from clinic.services.audit import log_action
from clinic.services.records import fetch


def serialize_prescription(rx: Prescription) -> dict:
    return {
        'id': rx.pk,
        'hospital_id': rx.hospital_id,
        'patient_id': rx.patient_id,
        'patient_name': rx.patient_name,
        'doctor_id': rx.doctor_id,
        'doctor_name': rx.doctor_name,
        'date': rx.date.isoformat() if rx.date else None,
        'complaints': rx.complaints,
        'advice': rx.advice,
        'meds': rx.meds,
        'therapies': rx.therapies,
        'created_at': rx.created_at.isoformat() if rx.created_at else None,
    }


def list_prescriptions(actor, *, patient_id=None):
    qs = policy.visible(actor, policy.PRESCRIPTION, Prescription.objects.order_by('-created_at', '-id'))
    if patient_id:
        qs = qs.filter(patient_id=patient_id)
    return qs


def create_prescription(actor, data: dict) -> Prescription:
    policy.enforce(actor, 'create', policy.Target(getattr(actor, 'hospital_id', None)), policy.PRESCRIPTION)
    patient = None
    if data.get('patient_id'):
        patient = fetch(Patient, data['patient_id'], 'Patient')
        policy.enforce(actor, 'read', patient)
    rx = Prescription.objects.create(
        hospital_id=actor.hospital_id,
        patient=patient,
        patient_name=data.get('patient_name') or (patient.name if patient else ''),
        doctor=actor,
        doctor_name=actor.display_name,
        date=data.get('date') or timezone.now(),
        complaints=data.get('complaints', ''),
        advice=data.get('advice', ''),
        meds=data.get('meds') or [],
        therapies=data.get('therapies') or [],
    )
    log_action(user=actor, action='prescription.create', object_type='prescription', object_id=rx.pk,
               detail={'patient_id': rx.patient_id})
    return rx


def delete_prescription(actor, pk) -> None:
    rx = fetch(Prescription, pk, 'Prescription')
    policy.enforce(actor, 'delete', rx)
    rid = rx.pk
    rx.delete()
    log_action(user=actor, action='prescription.delete', object_type='prescription', object_id=rid)
