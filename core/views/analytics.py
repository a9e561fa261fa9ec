"""
Analytics ingestion (anonymous, throttled) and admin reporting endpoints.
"""
from __future__ import annotations

from rest_framework import serializers
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from core.permissions import IsAdminRole
from core.services import analytics as svc


class BatchSerializer(serializers.Serializer):
    events = serializers.ListField(child=serializers.JSONField(), allow_empty=True)


class PageViewUpdateSerializer(serializers.Serializer):
    pageViewId = serializers.IntegerField(min_value=1)
    timeOnPage = serializers.IntegerField(min_value=0, required=False)
    scrollDepth = serializers.IntegerField(min_value=0, max_value=100, required=False)
    isBounce = serializers.BooleanField(required=False)


class SessionStartSerializer(serializers.Serializer):
    sessionId = serializers.CharField(max_length=100, required=False)
    entryPage = serializers.CharField(max_length=1000, required=False, default='/')


class SessionEndSerializer(serializers.Serializer):
    sessionId = serializers.CharField(max_length=100)


def _agent(request) -> str:
    return request.META.get('HTTP_USER_AGENT', '')


@api_view(['POST'])
@permission_classes([AllowAny])
def analytics_batch(request):
    reason = svc.skip_reason(request.headers, _agent(request))
    if reason:
        return Response({'ok': True, 'skipped': True, 'reason': reason})
    s = BatchSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    processed = svc.process_batch(
        s.validated_data['events'], user=request.user, user_agent=_agent(request), ip=svc.client_ip(request.META),
    )
    return Response({'ok': True, 'processed': processed})


analytics_batch.cls.throttle_scope = 'analytics'


@api_view(['PUT'])
@permission_classes([AllowAny])
def analytics_pageview(request):
    if svc.skip_reason(request.headers, _agent(request)):
        return Response({'ok': True, 'skipped': True})
    s = PageViewUpdateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    view = svc.update_pageview(s.validated_data)
    return Response({'ok': True, 'pageViewId': view.id, 'scrollDepth': view.scroll_depth})


analytics_pageview.cls.throttle_scope = 'analytics'


@api_view(['POST', 'PUT'])
@permission_classes([AllowAny])
def analytics_session(request):
    if request.method == 'PUT':
        s = SessionEndSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        session = svc.end_session(s.validated_data['sessionId'])
        return Response({'ok': True, 'sessionId': session.session_id, 'duration': session.duration})
    reason = svc.skip_reason(request.headers, _agent(request))
    if reason:
        return Response({'ok': True, 'skipped': True, 'reason': reason})
    s = SessionStartSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    session, reused = svc.start_session(
        user=request.user,
        entry_page=s.validated_data['entryPage'],
        user_agent=_agent(request),
        ip=svc.client_ip(request.META),
        session_id=s.validated_data.get('sessionId'),
    )
    return Response({'ok': True, 'sessionId': session.session_id, 'reused': reused})


analytics_session.cls.throttle_scope = 'analytics'


@api_view(['GET'])
@permission_classes([IsAdminRole])
def admin_analytics(request):
    return Response(svc.overview(request.query_params.get('range', '30d')))


@api_view(['GET'])
@permission_classes([IsAdminRole])
def admin_analytics_realtime(request):
    return Response(svc.realtime())


@api_view(['GET'])
@permission_classes([IsAdminRole])
def admin_active_users(request):
    try:
        minutes = max(1, min(60, int(request.query_params.get('minutes', 5))))
    except ValueError:
        minutes = 5
    users = svc.active_users(minutes)
    return Response({'activeUsers': users, 'count': len(users), 'minutes': minutes})


@api_view(['GET'])
@permission_classes([IsAdminRole])
def admin_dashboard(request):
    return Response(svc.admin_dashboard(request.user))
