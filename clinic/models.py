"""
Database models for the clinic backend.

A :class:`Hospital` is the tenant root.  Staff users, patient records,
appointments and prescriptions all point back at exactly one hospital
and access to them is decided by :mod:`clinic.services.policy`.
"""
from __future__ import annotations

from django.contrib.auth.models import AbstractUser
from django.db import models


class Role(models.TextChoices):
    PATIENT = 'patient', 'Patient'
    GUARDIAN = 'guardian', 'Guardian'
    DOCTOR = 'doctor', 'Doctor'
    THERAPIST = 'therapist', 'Therapist'
    SUPPORT = 'support', 'Support staff'
    HOSPITAL_ADMIN = 'hospital_admin', 'Hospital administrator'
    ADMIN = 'admin', 'Administrator'
    SUPER_ADMIN = 'super_admin', 'Super administrator'


# Roles that can be put on a hospital roster through the staff endpoints
ROSTER_ROLES = frozenset({Role.DOCTOR, Role.THERAPIST, Role.SUPPORT})
# Roles that can be booked for an appointment
CLINICIAN_ROLES = frozenset({Role.DOCTOR, Role.THERAPIST})
# Roles that are always tenant-affiliated
STAFF_ROLES = frozenset({Role.DOCTOR, Role.THERAPIST, Role.SUPPORT, Role.HOSPITAL_ADMIN})
# Tenant-unrestricted roles
ELEVATED_ROLES = frozenset({Role.ADMIN, Role.SUPER_ADMIN})
# Roles that may be chosen at self-registration
SELF_SERVICE_ROLES = frozenset({Role.PATIENT, Role.GUARDIAN})


class Hospital(models.Model):
    """A hospital or clinic; the unit of data isolation."""
    name = models.CharField(max_length=255)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=32, blank=True)
    address = models.CharField(max_length=255, blank=True)
    city = models.CharField(max_length=128, blank=True)
    description = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"{self.name} (#{self.pk})"


class User(AbstractUser):
    """Login identity with a role and an optional hospital affiliation.

    ``email``, ``phone`` and ``username`` are unique when present.  Blank
    values are stored as NULL so that users without a phone number, for
    example, do not collide with each other.
    """
    role = models.CharField(max_length=20, choices=Role.choices, default=Role.PATIENT, db_index=True)
    hospital = models.ForeignKey(
        Hospital, null=True, blank=True, on_delete=models.SET_NULL, related_name='users'
    )
    full_name = models.CharField(max_length=255, blank=True)
    email = models.EmailField(unique=True, null=True, blank=True)
    phone = models.CharField(max_length=32, unique=True, null=True, blank=True)
    department = models.CharField(max_length=128, blank=True)

    def save(self, *args, **kwargs):
        self.email = (self.email or '').strip().lower() or None
        self.phone = (self.phone or '').strip() or None
        self.username = (self.username or '').strip().lower()
        super().save(*args, **kwargs)

    @property
    def display_name(self) -> str:
        return self.full_name or self.get_full_name() or self.username

    def __str__(self) -> str:
        return f"{self.username} ({self.role})"


class Patient(models.Model):
    """Clinical record owned by one hospital.

    ``user`` is the patient's own login when they have one; ``guardians``
    are family caregivers allowed to follow the record.
    """
    hospital = models.ForeignKey(Hospital, on_delete=models.CASCADE, related_name='patients')
    user = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='patient_records'
    )
    guardians = models.ManyToManyField(User, blank=True, related_name='guarded_patients')
    name = models.CharField(max_length=255)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=32, blank=True)
    dob = models.DateField(null=True, blank=True)
    gender = models.CharField(max_length=16, blank=True)
    address = models.CharField(max_length=255, blank=True)
    medical_history = models.TextField(blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [models.Index(fields=['hospital', 'created_at'], name='clinic_pati_hospita_5c1e0a_idx')]

    def __str__(self) -> str:
        return f"{self.name} @ {self.hospital_id}"


class Appointment(models.Model):
    STATUS_PENDING = 'pending'
    STATUS_CONFIRMED = 'confirmed'
    STATUS_COMPLETED = 'completed'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = (
        (STATUS_PENDING, 'Pending'),
        (STATUS_CONFIRMED, 'Confirmed'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_CANCELLED, 'Cancelled'),
    )
    TERMINAL_STATUSES = frozenset({STATUS_COMPLETED, STATUS_CANCELLED})

    # event -> (statuses it may start from, resulting status)
    TRANSITIONS = {
        'cancel': ({STATUS_PENDING, STATUS_CONFIRMED}, STATUS_CANCELLED),
        'reschedule': ({STATUS_PENDING, STATUS_CONFIRMED}, STATUS_PENDING),
        'confirm': ({STATUS_PENDING}, STATUS_CONFIRMED),
        'complete': ({STATUS_PENDING, STATUS_CONFIRMED}, STATUS_COMPLETED),
    }

    TYPE_CHOICES = (
        (Role.DOCTOR.value, 'Doctor'),
        (Role.THERAPIST.value, 'Therapist'),
    )

    hospital = models.ForeignKey(Hospital, on_delete=models.CASCADE, related_name='appointments')
    patient = models.ForeignKey(User, on_delete=models.CASCADE, related_name='patient_appointments')
    staff = models.ForeignKey(User, on_delete=models.CASCADE, related_name='staff_appointments')
    type = models.CharField(max_length=16, choices=TYPE_CHOICES)
    start_time = models.DateTimeField()
    end_time = models.DateTimeField()
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['patient', 'start_time'], name='clinic_appo_patient_8d2f41_idx'),
            models.Index(fields=['staff', 'start_time'], name='clinic_appo_staff_i_3a7b90_idx'),
            models.Index(fields=['hospital', 'start_time'], name='clinic_appo_hospita_e4c6d2_idx'),
        ]

    def __str__(self) -> str:
        return f"appt {self.pk} p={self.patient_id} s={self.staff_id} [{self.status}]"


class Prescription(models.Model):
    """A doctor's note for a patient.  Never edited after creation."""
    hospital = models.ForeignKey(Hospital, on_delete=models.CASCADE, related_name='prescriptions')
    patient = models.ForeignKey(
        Patient, null=True, blank=True, on_delete=models.SET_NULL, related_name='prescriptions'
    )
    patient_name = models.CharField(max_length=255, blank=True)
    doctor = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='prescriptions_written'
    )
    doctor_name = models.CharField(max_length=255, blank=True)
    date = models.DateTimeField()
    complaints = models.TextField(blank=True)
    advice = models.TextField(blank=True)
    meds = models.JSONField(default=list, blank=True)
    therapies = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [models.Index(fields=['hospital', 'created_at'], name='clinic_pres_hospita_7f0b3c_idx')]

    def __str__(self) -> str:
        return f"rx {self.pk} for {self.patient_name or self.patient_id}"


class Notification(models.Model):
    recipient = models.ForeignKey(User, on_delete=models.CASCADE, related_name='notifications')
    sender = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='notifications_sent'
    )
    title = models.CharField(max_length=255)
    message = models.TextField(blank=True)
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [models.Index(fields=['recipient', 'is_read', 'created_at'], name='clinic_noti_recipie_1b9e55_idx')]

    def __str__(self) -> str:
        return f"note {self.pk} -> {self.recipient_id}"


class AuditEvent(models.Model):
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.IntegerField(blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at'], name='clinic_audi_action_0e2a71_idx'),
            models.Index(fields=['object_type', 'object_id', 'created_at'], name='clinic_audi_object__9c4d18_idx'),
        ]
