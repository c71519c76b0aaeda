"""
Hospital and staff roster endpoints.

``GET /api/hospitals`` and the roster listing stay open to every signed-in
user so patients can pick a hospital and a clinician to book; writes are
limited by the access policy.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..serializers.hospital import (
    HospitalAdminAssignSerializer,
    HospitalAdminCreateSerializer,
    HospitalCreateSerializer,
    HospitalSerializer,
    StaffAssignSerializer,
)
from ..services import hospitals as svc
from ..services.users import serialize_user


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def hospitals_list(request):
    if request.method == 'GET':
        qs = svc.list_hospitals(request.user)
        return Response({'ok': True, 'hospitals': [svc.serialize_hospital(h) for h in qs]})
    s = HospitalCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    hospital, admin = svc.create_hospital(request.user, s.validated_data)
    payload = {'ok': True, 'hospital': svc.serialize_hospital(hospital)}
    if admin is not None:
        payload['admin'] = serialize_user(admin)
    return Response(payload, status=201)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def hospital_detail(request, pk: int):
    if request.method == 'GET':
        return Response({'ok': True, 'hospital': svc.serialize_hospital(svc.get_hospital(request.user, pk))})
    if request.method == 'DELETE':
        svc.delete_hospital(request.user, pk)
        return Response({'ok': True})
    s = HospitalSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    hospital = svc.update_hospital(request.user, pk, s.validated_data)
    return Response({'ok': True, 'hospital': svc.serialize_hospital(hospital)})


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def hospital_staff(request, pk: int):
    if request.method == 'GET':
        staff = svc.list_staff(request.user, pk)
        return Response({'ok': True, 'staff': [serialize_user(u) for u in staff]})
    s = StaffAssignSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    user = svc.assign_staff(request.user, pk, s.validated_data)
    return Response({'ok': True, 'user': serialize_user(user)}, status=201)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def hospital_staff_remove(request, pk: int, user_id: int):
    svc.remove_staff(request.user, pk, user_id)
    return Response({'ok': True})


@api_view(['POST', 'PUT'])
@permission_classes([IsAuthenticated])
def hospital_admin(request, pk: int):
    """POST creates a new admin account for the hospital; PUT moves an existing account onto it."""
    if request.method == 'POST':
        s = HospitalAdminCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        admin = svc.create_hospital_admin(request.user, pk, s.validated_data)
        return Response({'ok': True, 'admin': serialize_user(admin)}, status=201)
    s = HospitalAdminAssignSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    admin = svc.reassign_hospital_admin(request.user, pk, s.validated_data)
    return Response({'ok': True, 'admin': serialize_user(admin)})
