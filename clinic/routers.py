"""
URL map of the clinic API.

Every route lives under ``/api`` and has no trailing slash, matching the
paths the front-end calls.
"""
from django.urls import include, path

from .auth_views import login_view, logout_view, me_view, refresh_view, register_view
from .views.appointments import (
    appointment_cancel,
    appointment_complete,
    appointment_confirm,
    appointment_reschedule,
    appointments_list,
    appointments_mine,
    appointments_staff_mine,
)
from .views.health import healthz
from .views.hospitals import hospital_admin, hospital_detail, hospital_staff, hospital_staff_remove, hospitals_list
from .views.notifications import notification_read, notifications_list, notifications_read_all
from .views.patients import (
    patient_detail,
    patient_guardian_remove,
    patient_guardians,
    patients_list,
    patients_sync_from_appointments,
    patients_with_records,
)
from .views.prescriptions import prescription_detail, prescriptions_list

api_patterns = [
    # auth
    path('auth/register', register_view),
    path('auth/login', login_view),
    path('auth/refresh', refresh_view),
    path('auth/logout', logout_view),
    path('auth/me', me_view),

    # hospitals & staff
    path('hospitals', hospitals_list),
    path('hospitals/<int:pk>', hospital_detail),
    path('hospitals/<int:pk>/staff', hospital_staff),
    path('hospitals/<int:pk>/staff/<int:user_id>', hospital_staff_remove),
    path('hospitals/<int:pk>/admin', hospital_admin),

    # patients
    path('patients', patients_list),
    path('patients/with-records', patients_with_records),
    path('patients/sync-from-appointments', patients_sync_from_appointments),
    path('patients/<int:pk>', patient_detail),
    path('patients/<int:pk>/guardians', patient_guardians),
    path('patients/<int:pk>/guardians/<int:guardian_id>', patient_guardian_remove),

    # appointments
    path('appointments', appointments_list),
    path('appointments/mine', appointments_mine),
    path('appointments/staff/mine', appointments_staff_mine),
    path('appointments/<int:pk>/cancel', appointment_cancel),
    path('appointments/<int:pk>/reschedule', appointment_reschedule),
    path('appointments/<int:pk>/confirm', appointment_confirm),
    path('appointments/<int:pk>/complete', appointment_complete),

    # prescriptions
    path('prescriptions', prescriptions_list),
    path('prescriptions/<int:pk>', prescription_detail),

    # notifications
    path('notifications', notifications_list),
    path('notifications/read-all', notifications_read_all),
    path('notifications/<int:pk>/read', notification_read),
]

urlpatterns = [
    path('api/', include(api_patterns)),
    path('healthz', healthz),
    path('', include('django_prometheus.urls')),
]
