"""Patient record endpoints."""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..serializers.patient import (
    GuardianAssignSerializer,
    PatientListQuerySerializer,
    PatientSerializer,
    PatientSyncQuerySerializer,
)
from ..services import patients as svc


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def patients_list(request):
    if request.method == 'GET':
        q = PatientListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        qs = svc.list_patients(request.user, **q.validated_data)
        return Response({'ok': True, 'patients': [svc.serialize_patient(p) for p in qs]})
    s = PatientSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    patient = svc.create_patient(request.user, s.validated_data)
    return Response({'ok': True, 'patient': svc.serialize_patient(patient)}, status=201)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def patient_detail(request, pk: int):
    if request.method == 'GET':
        return Response({'ok': True, 'patient': svc.serialize_patient(svc.get_patient(request.user, pk))})
    if request.method == 'DELETE':
        svc.delete_patient(request.user, pk)
        return Response({'ok': True})
    s = PatientSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    patient = svc.update_patient(request.user, pk, s.validated_data)
    return Response({'ok': True, 'patient': svc.serialize_patient(patient)})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def patient_guardians(request, pk: int):
    s = GuardianAssignSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    patient = svc.add_guardian(request.user, pk, s.validated_data['guardian_id'])
    return Response({'ok': True, 'patient': svc.serialize_patient(patient)})


@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def patient_guardian_remove(request, pk: int, guardian_id: int):
    patient = svc.remove_guardian(request.user, pk, guardian_id)
    return Response({'ok': True, 'patient': svc.serialize_patient(patient)})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def patients_with_records(request):
    """Patient listing with each record's appointment count and latest appointment time."""
    q = PatientListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    qs = svc.list_patients_with_records(request.user, **q.validated_data)
    return Response({'ok': True, 'patients': [svc.serialize_patient_record(p) for p in qs]})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def patients_sync_from_appointments(request):
    # hospital_id may come from the query string or the body
    q = PatientSyncQuerySerializer(data={**request.query_params.dict(), **request.data})
    q.is_valid(raise_exception=True)
    created = svc.sync_from_appointments(request.user, **q.validated_data)
    return Response({'ok': True, 'created': len(created),
                     'patients': [svc.serialize_patient(p) for p in created]})
