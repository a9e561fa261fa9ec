"""
First-party analytics: ingestion of client beacons and the admin reports.

Ingestion is best-effort and privacy-aware. Batches are dropped without
writes when analytics is disabled, when the browser sends Do-Not-Track or
Global Privacy Control, or when the user agent looks like a crawler.
Reports are cached because they aggregate over whole tables.
"""
from __future__ import annotations

import logging
import re
from collections import Counter
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Tuple

from django.conf import settings
from django.core.cache import cache
from django.db import transaction
from django.db.models import Count
from django.utils import timezone
from django.utils.crypto import get_random_string

from core.exceptions import InvalidInput, NotFound
from core.models import (
    Content,
    Message,
    PageView,
    RecommendationRequest,
    Scholarship,
    User,
    UserEvent,
    UserSession,
)
from core.services.audit import recent_actions

logger = logging.getLogger(__name__)

BOT_REGEX = re.compile(
    r'(bot|crawler|spider|crawling|preview|facebookexternalhit|slurp|bing|duckduckbot|yandex|baiduspider)',
    re.IGNORECASE,
)
RANGES = {'7d': 7, '30d': 30, '90d': 90, '1y': 365}
OVERVIEW_CACHE_KEY = 'analytics:overview:{range}'
REALTIME_CACHE_KEY = 'analytics:realtime'
REALTIME_TTL = 30
ACTIVE_WINDOW = timedelta(minutes=5)
SESSION_REUSE_WINDOW = timedelta(minutes=30)
SESSION_ID_CHARS = 'abcdefghijklmnopqrstuvwxyz0123456789'


def parse_user_agent(ua: Optional[str]) -> Dict[str, str]:
    ua = (ua or '').lower()

    if re.search(r'ipad|tablet', ua):
        device = 'tablet'
    elif re.search(r'mobi|android|iphone', ua):
        device = 'mobile'
    else:
        device = 'desktop'

    if 'edg/' in ua:
        browser = 'Edge'
    elif re.search(r'opr/|opera', ua):
        browser = 'Opera'
    elif 'chrome/' in ua:
        browser = 'Chrome'
    elif 'firefox/' in ua:
        browser = 'Firefox'
    elif 'safari/' in ua:
        browser = 'Safari'
    else:
        browser = 'Unknown'

    if 'windows' in ua:
        os_name = 'Windows'
    elif re.search(r'iphone|ipad|ios', ua):
        os_name = 'iOS'
    elif 'mac os x' in ua:
        os_name = 'macOS'
    elif 'android' in ua:
        os_name = 'Android'
    elif 'linux' in ua:
        os_name = 'Linux'
    else:
        os_name = 'Unknown'

    return {'device': device, 'browser': browser, 'os': os_name}


def skip_reason(headers, user_agent: str) -> Optional[str]:
    """Why a beacon must be ignored, or ``None`` when it may be recorded."""
    if not settings.ANALYTICS_ENABLED:
        return 'disabled'
    if headers.get('DNT') == '1' or headers.get('Sec-GPC') == '1':
        return 'dnt'
    if BOT_REGEX.search(user_agent or ''):
        return 'bot'
    return None


def client_ip(meta) -> Optional[str]:
    """Peer address, or the nearest untrusted hop when the peer is a trusted proxy."""
    remote = meta.get('REMOTE_ADDR') or None
    trusted = set(settings.TRUSTED_PROXIES)
    forwarded = meta.get('HTTP_X_FORWARDED_FOR', '')
    if not forwarded or remote not in trusted:
        return remote
    hops = [h.strip() for h in forwarded.split(',') if h.strip()]
    for hop in reversed(hops):
        if hop not in trusted:
            return hop
    return hops[0] if hops else remote


# ---------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------
def _user(user) -> Optional[User]:
    return user if user is not None and getattr(user, 'is_authenticated', False) else None


def _session_for(session_id: str, *, user, page: str, agent: Dict[str, str], ip: Optional[str],
                 now: datetime) -> UserSession:
    session, created = UserSession.objects.get_or_create(
        session_id=session_id,
        defaults={
            'user': user, 'start_time': now, 'entry_page': page, 'exit_page': page,
            'ip_address': ip, 'updated_at': now, **agent,
        },
    )
    if not created and user is not None and session.user_id is None:
        session.user = user
    return session


def record_pageview(payload: Dict[str, Any], *, user=None, user_agent: str = '', ip: Optional[str] = None,
                    now: Optional[datetime] = None) -> PageView:
    now = now or timezone.now()
    session_id = str(payload.get('sessionId') or '')[:100]
    page = str(payload.get('page') or payload.get('pageUrl') or '')[:1000]
    if not session_id or not page:
        raise InvalidInput('pageview requires sessionId and page')
    user = _user(user)
    agent = parse_user_agent(user_agent)
    view = PageView.objects.create(
        user=user,
        session_id=session_id,
        page=page,
        title=str(payload.get('title') or '')[:500],
        referrer=str(payload.get('referrer') or '')[:1000],
        user_agent=(user_agent or '')[:1000],
        ip_address=ip,
        timestamp=now,
        **agent,
    )
    session = _session_for(session_id, user=user, page=page, agent=agent, ip=ip, now=now)
    session.page_views += 1
    session.exit_page = page
    session.is_active = True
    session.updated_at = now
    session.duration = max(0, int((now - session.start_time).total_seconds()))
    session.save()
    return view


def record_event(payload: Dict[str, Any], *, user=None, now: Optional[datetime] = None) -> UserEvent:
    session_id = str(payload.get('sessionId') or '')[:100]
    name = str(payload.get('eventName') or payload.get('name') or '')[:100]
    if not session_id or not name:
        raise InvalidInput('event requires sessionId and eventName')
    properties = payload.get('properties')
    return UserEvent.objects.create(
        user=_user(user),
        session_id=session_id,
        event_type=str(payload.get('eventType') or 'custom')[:50],
        event_name=name,
        page=str(payload.get('page') or '')[:1000],
        properties=properties if isinstance(properties, dict) else {},
        timestamp=now or timezone.now(),
    )


def record_heartbeat(payload: Dict[str, Any], *, now: Optional[datetime] = None) -> bool:
    now = now or timezone.now()
    session = UserSession.objects.filter(session_id=str(payload.get('sessionId') or '')).first()
    if not session:
        return False
    session.is_active = True
    session.updated_at = now
    session.duration = max(0, int((now - session.start_time).total_seconds()))
    session.save(update_fields=['is_active', 'updated_at', 'duration'])
    return True


def process_batch(events: Iterable[Dict[str, Any]], *, user=None, user_agent: str = '',
                  ip: Optional[str] = None) -> int:
    """Apply up to ``ANALYTICS_MAX_BATCH`` events; malformed items are skipped."""
    processed = 0
    for item in list(events)[:settings.ANALYTICS_MAX_BATCH]:
        if not isinstance(item, dict):
            continue
        payload = item.get('payload') if isinstance(item.get('payload'), dict) else {}
        kind = item.get('type')
        try:
            with transaction.atomic():
                if kind == 'pageview':
                    record_pageview(payload, user=user, user_agent=user_agent, ip=ip)
                elif kind == 'event':
                    record_event(payload, user=user)
                elif kind == 'heartbeat':
                    if not record_heartbeat(payload):
                        continue
                else:
                    continue
        except InvalidInput as exc:
            logger.debug("analytics item skipped: %s", exc.message)
            continue
        processed += 1
    return processed


def update_pageview(data: Dict[str, Any]) -> PageView:
    view = PageView.objects.filter(pk=data['pageViewId']).first()
    if not view:
        raise NotFound('Page view not found')
    if 'timeOnPage' in data:
        view.time_on_page = data['timeOnPage']
    if 'scrollDepth' in data:
        view.scroll_depth = max(view.scroll_depth, data['scrollDepth'])
    if 'isBounce' in data:
        view.is_bounce = data['isBounce']
    view.save(update_fields=['time_on_page', 'scroll_depth', 'is_bounce'])
    return view


def start_session(*, user=None, entry_page: str = '/', user_agent: str = '', ip: Optional[str] = None,
                  session_id: Optional[str] = None) -> Tuple[UserSession, bool]:
    """Return ``(session, reused)``; a signed-in user's recent active session is reused."""
    now = timezone.now()
    user = _user(user)
    if session_id:
        existing = UserSession.objects.filter(session_id=session_id[:100]).first()
        if existing:
            existing.updated_at = now
            existing.save(update_fields=['updated_at'])
            return existing, True
    if user is not None:
        recent = (UserSession.objects.filter(user=user, is_active=True, updated_at__gte=now - SESSION_REUSE_WINDOW)
                  .order_by('-updated_at').first())
        if recent:
            recent.updated_at = now
            recent.save(update_fields=['updated_at'])
            return recent, True
    sid = session_id or f"session_{int(now.timestamp() * 1000)}_{get_random_string(9, SESSION_ID_CHARS)}"
    session = UserSession.objects.create(
        session_id=sid[:100], user=user, start_time=now, entry_page=entry_page[:1000], exit_page=entry_page[:1000],
        ip_address=ip, updated_at=now, **parse_user_agent(user_agent),
    )
    return session, False


def end_session(session_id: str) -> UserSession:
    session = UserSession.objects.filter(session_id=session_id).first()
    if not session:
        raise NotFound('Session not found')
    now = timezone.now()
    session.is_active = False
    session.end_time = now
    session.duration = max(0, int((now - session.start_time).total_seconds()))
    session.updated_at = now
    session.save()
    return session


# ---------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------
def _month_starts(now: datetime, count: int = 6) -> List[datetime]:
    first = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    months = [first]
    for _ in range(count - 1):
        prev = months[-1] - timedelta(days=1)
        months.append(prev.replace(day=1))
    return list(reversed(months))


def _next_month(start: datetime) -> datetime:
    return (start + timedelta(days=32)).replace(day=1)


def _growth(current: int, previous: int) -> float:
    if previous == 0:
        return 100.0 if current else 0.0
    return round((current - previous) / previous * 100, 1)


def build_overview(range_key: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or timezone.now()
    days = RANGES.get(range_key, RANGES['30d'])
    start = now - timedelta(days=days)
    prev_start = start - timedelta(days=days)

    new_users = User.objects.filter(date_joined__gte=start).count()
    prev_users = User.objects.filter(date_joined__gte=prev_start, date_joined__lt=start).count()
    views = PageView.objects.filter(timestamp__gte=start)
    view_count = views.count()
    prev_views = PageView.objects.filter(timestamp__gte=prev_start, timestamp__lt=start).count()

    trends = []
    for month in _month_starts(now):
        end = _next_month(month)
        trends.append({
            'month': month.strftime('%Y-%m'),
            'users': User.objects.filter(date_joined__gte=month, date_joined__lt=end).count(),
            'content': Content.objects.filter(created_at__gte=month, created_at__lt=end).count(),
            'pageViews': PageView.objects.filter(timestamp__gte=month, timestamp__lt=end).count(),
        })

    top_content = [
        {'id': c.id, 'title': c.title, 'slug': c.slug, 'type': c.type, 'viewCount': c.view_count}
        for c in Content.objects.order_by('-view_count', '-id')[:5]
    ]
    top_pages = [
        {'page': row['page'], 'views': row['views']}
        for row in views.values('page').annotate(views=Count('id')).order_by('-views', 'page')[:10]
    ]
    return {
        'range': range_key if range_key in RANGES else '30d',
        'overview': {
            'totalUsers': User.objects.count(),
            'newUsers': new_users,
            'totalContent': Content.objects.count(),
            'newContent': Content.objects.filter(created_at__gte=start).count(),
            'totalScholarships': Scholarship.objects.count(),
            'pageViews': view_count,
            'sessions': UserSession.objects.filter(start_time__gte=start).count(),
        },
        'trends': trends,
        'topContent': top_content,
        'topPages': top_pages,
        'growth': {
            'users': _growth(new_users, prev_users),
            'pageViews': _growth(view_count, prev_views),
        },
        'generatedAt': now.isoformat(),
    }


def overview(range_key: str) -> Dict[str, Any]:
    key = OVERVIEW_CACHE_KEY.format(range=range_key if range_key in RANGES else '30d')
    data = cache.get(key)
    if data is None:
        data = build_overview(range_key)
        cache.set(key, data, settings.ANALYTICS_CACHE_TTL)
    return data


def _breakdown(values: List[str]) -> List[Dict[str, Any]]:
    counts = Counter(v or 'Unknown' for v in values)
    total = sum(counts.values())
    return [
        {'name': name, 'count': n, 'percentage': round(n / total * 100) if total else 0}
        for name, n in counts.most_common()
    ]


def build_realtime(now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or timezone.now()
    today = timezone.localtime(now).replace(hour=0, minute=0, second=0, microsecond=0)
    day_ago = now - timedelta(hours=24)

    hourly = [0] * 24
    for ts in PageView.objects.filter(timestamp__gt=day_ago).values_list('timestamp', flat=True):
        bucket = 23 - int((now - ts).total_seconds() // 3600)
        if 0 <= bucket < 24:
            hourly[bucket] += 1
    hourly_views = [
        {'hour': (now - timedelta(hours=23 - i)).strftime('%Y-%m-%dT%H:00'), 'views': n}
        for i, n in enumerate(hourly)
    ]

    recent_sessions = UserSession.objects.filter(updated_at__gte=day_ago)
    devices = list(recent_sessions.values_list('device', 'browser', 'os'))
    latest = [
        {
            'sessionId': s.session_id,
            'userId': s.user_id,
            'entryPage': s.entry_page,
            'exitPage': s.exit_page,
            'pageViews': s.page_views,
            'duration': s.duration,
            'device': s.device,
            'browser': s.browser,
            'isActive': s.is_active,
            'updatedAt': s.updated_at.isoformat(),
        }
        for s in UserSession.objects.order_by('-updated_at')[:10]
    ]
    return {
        'activeUsers': UserSession.objects.filter(is_active=True, updated_at__gte=now - ACTIVE_WINDOW).count(),
        'todaySessions': UserSession.objects.filter(start_time__gte=today).count(),
        'todayPageViews': PageView.objects.filter(timestamp__gte=today).count(),
        'hourlyPageViews': hourly_views,
        'devices': _breakdown([d for d, _, _ in devices]),
        'browsers': _breakdown([b for _, b, _ in devices]),
        'operatingSystems': _breakdown([o for _, _, o in devices]),
        'recentSessions': latest,
        'generatedAt': now.isoformat(),
    }


def realtime() -> Dict[str, Any]:
    data = cache.get(REALTIME_CACHE_KEY)
    if data is None:
        data = build_realtime()
        cache.set(REALTIME_CACHE_KEY, data, REALTIME_TTL)
    return data


def active_users(minutes: int = 5, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """Signed-in users with a live session, newest activity first, one row per user."""
    now = now or timezone.now()
    sessions = (UserSession.objects.filter(is_active=True, user__isnull=False,
                                           updated_at__gte=now - timedelta(minutes=minutes))
                .select_related('user').order_by('-updated_at'))
    seen = {}
    for s in sessions:
        if s.user_id in seen:
            seen[s.user_id]['sessionCount'] += 1
            continue
        seen[s.user_id] = {
            'userId': s.user_id,
            'name': s.user.display_name(),
            'email': s.user.email,
            'role': s.user.role,
            'currentPage': s.exit_page,
            'device': s.device,
            'browser': s.browser,
            'sessionDuration': max(0, int((now - s.start_time).total_seconds())),
            'lastActivity': s.updated_at.isoformat(),
            'sessionCount': 1,
        }
    return list(seen.values())


def expire_idle_sessions(now: Optional[datetime] = None) -> int:
    now = now or timezone.now()
    return UserSession.objects.filter(is_active=True, updated_at__lt=now - SESSION_REUSE_WINDOW).update(
        is_active=False, end_time=now,
    )


def admin_dashboard(user: User) -> Dict[str, Any]:
    def counts(qs, field: str) -> Dict[str, int]:
        return {row[field]: row['n'] for row in qs.values(field).annotate(n=Count('id')).order_by(field)}

    return {
        'users': {'total': User.objects.count(), 'byRole': counts(User.objects.all(), 'role')},
        'recommendations': counts(RecommendationRequest.objects.all(), 'status'),
        'unreadMessages': Message.objects.filter(recipients=user, is_read=False, is_archived=False).count(),
        'content': counts(Content.objects.all(), 'status'),
        'scholarships': Scholarship.objects.count(),
        'recentActions': recent_actions(),
    }
