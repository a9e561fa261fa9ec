"""
Editorial content (blog posts, opportunities, events) with version history.

Every update stores the pre-update state as a ``ContentVersion`` snapshot,
so any earlier version can be restored. Restoring is itself an update and
therefore produces a new version rather than rewinding the counter.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from django.db import transaction
from django.db.models import F, Q
from django.utils.dateparse import parse_datetime

from core.exceptions import InvalidInput, NotFound
from core.models import Content, ContentVersion, User
from core.pagination import truthy
from core.services.audit import log_action

logger = logging.getLogger(__name__)

SORT_FIELDS = {
    'publishDate': 'publish_date',
    'createdAt': 'created_at',
    'updatedAt': 'updated_at',
    'title': 'title',
    'viewCount': 'view_count',
}
SNAPSHOT_FIELDS = (
    'title', 'slug', 'content', 'excerpt', 'type', 'status', 'publish_date', 'featured_image',
    'seo_title', 'seo_description', 'seo_keywords', 'author', 'categories', 'tags',
    'event_date', 'event_location', 'event_type', 'registration_link',
    'opportunity_deadline', 'opportunity_type', 'eligibility_criteria', 'cta', 'is_featured',
)
DATETIME_FIELDS = ('publish_date', 'event_date', 'opportunity_deadline')


def filter_content(params, *, include_unpublished: bool):
    qs = Content.objects.all()
    if not include_unpublished:
        qs = qs.filter(status='published')
    elif params.get('status') and params['status'] != 'all':
        qs = qs.filter(status=params['status'])
    if params.get('type') and params['type'] != 'all':
        qs = qs.filter(type=params['type'])
    if params.get('category'):
        qs = qs.filter(categories__icontains=f'"{params["category"]}"')
    if params.get('tag'):
        qs = qs.filter(tags__icontains=f'"{params["tag"]}"')
    if params.get('author'):
        qs = qs.filter(author__icontains=params['author'])
    if params.get('featured') not in (None, ''):
        qs = qs.filter(is_featured=truthy(params['featured']))
    search = (params.get('search') or '').strip()
    if search:
        qs = qs.filter(Q(title__icontains=search) | Q(excerpt__icontains=search) | Q(content__icontains=search))

    field = SORT_FIELDS.get(params.get('sortBy') or 'publishDate', 'publish_date')
    if params.get('sortOrder', 'desc') == 'asc':
        return qs.order_by(F(field).asc(nulls_first=True), 'id')
    return qs.order_by(F(field).desc(nulls_last=True), '-id')


def find(id_or_slug: str) -> Content:
    qs = Content.objects.all()
    item = qs.filter(pk=int(id_or_slug)).first() if str(id_or_slug).isdigit() else None
    item = item or qs.filter(slug=id_or_slug).first()
    if not item:
        raise NotFound('Content not found')
    return item


def _ensure_unique_slug(slug: str, exclude: Optional[int] = None) -> None:
    qs = Content.objects.filter(slug=slug)
    if exclude is not None:
        qs = qs.exclude(pk=exclude)
    if qs.exists():
        raise InvalidInput('Slug already exists')


def _normalize(data: Dict[str, Any]) -> Dict[str, Any]:
    data = dict(data)
    if 'cta' in data and data['cta'] is None:
        data['cta'] = {}
    return data


def create_content(user: User, data: Dict[str, Any]) -> Content:
    data = _normalize(data)
    item = Content(created_by=user, last_modified_by=user)
    for attr, value in data.items():
        setattr(item, attr, value)
    if not item.slug:
        item.slug = Content.slug_from_title(item.title)
    if not item.slug:
        raise InvalidInput('A slug could not be generated from the title')
    _ensure_unique_slug(item.slug)
    item.save()
    log_action(user=user, action='content_create', object_type='content', object_id=item.id,
               detail={'slug': item.slug})
    if item.status == 'published':
        log_action(user=user, action='content_publish', object_type='content', object_id=item.id)
    logger.info("content %s created (%s)", item.id, item.slug)
    return item


def snapshot(item: Content) -> Dict[str, Any]:
    data = {f: getattr(item, f) for f in SNAPSHOT_FIELDS}
    for f in DATETIME_FIELDS:
        if data[f] is not None:
            data[f] = data[f].isoformat()
    return data


@transaction.atomic
def update_content(item: Content, user: User, data: Dict[str, Any]) -> Content:
    data = _normalize(data)
    if data.get('slug') and data['slug'] != item.slug:
        _ensure_unique_slug(data['slug'], exclude=item.pk)
    was_published = item.status == 'published'
    ContentVersion.objects.create(content=item, version=item.version, snapshot=snapshot(item), modified_by=user)
    for attr, value in data.items():
        if attr == 'slug' and not value:
            continue
        setattr(item, attr, value)
    item.version += 1
    item.last_modified_by = user
    item.save()
    if item.status == 'published' and not was_published:
        log_action(user=user, action='content_publish', object_type='content', object_id=item.id)
    return item


def delete_content(item: Content, user: User) -> None:
    log_action(user=user, action='content_delete', object_type='content', object_id=item.id,
               detail={'slug': item.slug, 'title': item.title})
    logger.info("content %s deleted by user %s", item.id, user.id)
    item.delete()


def restore_version(item: Content, user: User, version: int) -> Content:
    saved = item.versions.filter(version=version).first()
    if not saved:
        raise NotFound('Version not found')
    data = dict(saved.snapshot)
    for f in DATETIME_FIELDS:
        if data.get(f):
            data[f] = parse_datetime(data[f])
    logger.info("content %s restoring version %s", item.id, version)
    return update_content(item, user, data)


def register_view(item: Content) -> None:
    if item.status == 'published':
        Content.objects.filter(pk=item.pk).update(view_count=F('view_count') + 1)
        item.view_count += 1
