"""
Appointment endpoints.

Patients book and manage their own appointments; doctors and therapists
see their own schedule; office roles browse by hospital.  Every state
change is one of the named events in ``Appointment.TRANSITIONS``.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..serializers.appointment import (
    AppointmentCreateSerializer, AppointmentListQuerySerializer, RescheduleSerializer,
)
from ..services import appointments as svc


def _many(qs):
    return Response({'ok': True, 'appointments': [svc.serialize_appointment(a) for a in qs]})


def _one(appt, status=200):
    return Response({'ok': True, 'appointment': svc.serialize_appointment(appt)}, status=status)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def appointments_list(request):
    if request.method == 'GET':
        q = AppointmentListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        return _many(svc.list_office(request.user, **q.validated_data))
    s = AppointmentCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    return _one(svc.book(request.user, s.validated_data), status=201)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def appointments_mine(request):
    return _many(svc.list_mine(request.user))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def appointments_staff_mine(request):
    return _many(svc.list_assigned(request.user))


@api_view(['PATCH', 'PUT'])
@permission_classes([IsAuthenticated])
def appointment_reschedule(request, pk: int):
    s = RescheduleSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    return _one(svc.change(request.user, pk, 'reschedule', **s.validated_data))


@api_view(['POST', 'PATCH'])
@permission_classes([IsAuthenticated])
def appointment_cancel(request, pk: int):
    return _one(svc.change(request.user, pk, 'cancel'))


@api_view(['POST', 'PATCH'])
@permission_classes([IsAuthenticated])
def appointment_confirm(request, pk: int):
    return _one(svc.change(request.user, pk, 'confirm'))


@api_view(['POST', 'PATCH'])
@permission_classes([IsAuthenticated])
def appointment_complete(request, pk: int):
    return _one(svc.change(request.user, pk, 'complete'))
