"""
The signed-in user's notifications.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.models import Notification
from core.pagination import page_params, paginate
from core.serializers.notifications import NotificationActionSerializer
from core.services import notifications as svc


def serialize_notification(n: Notification) -> dict:
    return {
        'id': n.id,
        'type': n.type,
        'title': n.title,
        'message': n.message,
        'priority': n.priority,
        'content': n.content,
        'isRead': n.is_read,
        'readAt': n.read_at.isoformat() if n.read_at else None,
        'createdAt': n.created_at.isoformat(),
    }


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def notifications_list(request):
    if request.method == 'GET':
        page, limit = page_params(request.query_params, default_limit=10, max_limit=50)
        items, total = paginate(svc.filter_notifications(request.user, request.query_params), page, limit)
        return Response({
            'notifications': [serialize_notification(n) for n in items],
            'pagination': {
                'page': page,
                'limit': limit,
                'total': total,
                'unread': svc.unread_count(request.user),
                'hasMore': page * limit < total,
            },
        })
    s = NotificationActionSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    if s.validated_data['action'] == 'markAllAsRead':
        updated = svc.mark_all_read(request.user)
    else:
        svc.mark_read(svc.get_notification(request.user, s.validated_data['notificationId']))
        updated = 1
    return Response({'success': True, 'updated': updated, 'unread': svc.unread_count(request.user)})


@api_view(['PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def notification_detail(request, pk: int):
    item = svc.get_notification(request.user, pk)
    if request.method == 'PATCH':
        return Response({'notification': serialize_notification(svc.mark_read(item))})
    item.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)
