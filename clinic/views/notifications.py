from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..serializers.notification import NotificationCreateSerializer, NotificationListQuerySerializer
from ..services import notifications as svc


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def notifications_list(request):
    if request.method == 'GET':
        q = NotificationListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        qs = svc.list_notifications(request.user, unread=q.validated_data.get('unread'))
        return Response({'ok': True, 'notifications': [svc.serialize_notification(n) for n in qs]})
    s = NotificationCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    n = svc.send(request.user, s.validated_data)
    return Response({'ok': True, 'notification': svc.serialize_notification(n)}, status=201)


@api_view(['POST', 'PATCH'])
@permission_classes([IsAuthenticated])
def notification_read(request, pk: int):
    n = svc.mark_read(request.user, pk)
    return Response({'ok': True, 'notification': svc.serialize_notification(n)})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def notifications_read_all(request):
    return Response({'ok': True, 'updated': svc.mark_all_read(request.user)})
