"""
Django admin registrations so superusers can inspect tenants, accounts
and clinical records at ``/admin/``.
"""
from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import Appointment, AuditEvent, Hospital, Notification, Patient, Prescription, User


@admin.register(Hospital)
class HospitalAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'city', 'email', 'phone', 'created_at')
    search_fields = ('name', 'city', 'email')


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ('username', 'full_name', 'email', 'role', 'hospital', 'is_active')
    list_filter = ('role', 'hospital', 'is_active')
    search_fields = ('username', 'full_name', 'email', 'phone')
    fieldsets = BaseUserAdmin.fieldsets + (
        ('Clinic', {'fields': ('role', 'hospital', 'full_name', 'phone', 'department')}),
    )


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'hospital', 'user', 'phone', 'created_at')
    list_filter = ('hospital',)
    search_fields = ('name', 'phone', 'email')
    filter_horizontal = ('guardians',)


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ('id', 'hospital', 'patient', 'staff', 'type', 'start_time', 'status')
    list_filter = ('status', 'type', 'hospital')


@admin.register(Prescription)
class PrescriptionAdmin(admin.ModelAdmin):
    list_display = ('id', 'hospital', 'patient_name', 'doctor_name', 'date')
    list_filter = ('hospital',)
    search_fields = ('patient_name', 'doctor_name')


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ('id', 'recipient', 'title', 'is_read', 'created_at')
    list_filter = ('is_read',)


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('id', 'action', 'object_type', 'object_id', 'user', 'created_at')
    list_filter = ('action', 'object_type')
    readonly_fields = ('user', 'action', 'object_type', 'object_id', 'detail', 'created_at')
