from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.conf import settings
from django.core.cache import cache
from django.core.management.base import BaseCommand
from django.utils import timezone

from core.services import analytics
from core.services.catalog import DASHBOARD_CACHE_KEY, dashboard_stats


class Command(BaseCommand):
    help = "Warm and refresh API caches; broadcast WebSocket refresh event."

    def handle(self, *args, **options):
        now = timezone.now()
        keys_refreshed = []

        # Admin analytics per range
        for range_key in analytics.RANGES:
            key = analytics.OVERVIEW_CACHE_KEY.format(range=range_key)
            cache.set(key, analytics.build_overview(range_key, now), settings.ANALYTICS_CACHE_TTL)
            keys_refreshed.append(key)

        cache.set(analytics.REALTIME_CACHE_KEY, analytics.build_realtime(now), analytics.REALTIME_TTL)
        keys_refreshed.append(analytics.REALTIME_CACHE_KEY)

        dashboard_stats(refresh=True)
        keys_refreshed.append(DASHBOARD_CACHE_KEY)

        expired = analytics.expire_idle_sessions(now)

        channel_layer = get_channel_layer()
        if channel_layer is not None:
            event = {"type": "broadcast.refresh", "version": int(now.timestamp()), "ts": now.isoformat(),
                     "keys": keys_refreshed[:50]}
            async_to_sync(channel_layer.group_send)("updates", event)

        self.stdout.write(self.style.SUCCESS(
            f"Refreshed {len(keys_refreshed)} keys, expired {expired} idle sessions at {now}"
        ))
