from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..serializers.prescription import PrescriptionCreateSerializer, PrescriptionListQuerySerializer
from ..services import prescriptions as svc


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def prescriptions_list(request):
    if request.method == 'GET':
        q = PrescriptionListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        qs = svc.list_prescriptions(request.user, **q.validated_data)
        return Response({'ok': True, 'prescriptions': [svc.serialize_prescription(rx) for rx in qs]})
    s = PrescriptionCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    rx = svc.create_prescription(request.user, s.validated_data)
    return Response({'ok': True, 'prescription': svc.serialize_prescription(rx)}, status=201)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def prescription_detail(request, pk: int):
    svc.delete_prescription(request.user, pk)
    return Response({'ok': True})
