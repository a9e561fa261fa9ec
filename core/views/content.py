"""
Public content endpoints. Anyone may read published items; admins manage them.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from core.exceptions import Forbidden, NotFound
from core.models import Content, ContentVersion
from core.pagination import content_meta, page_params, paginate
from core.permissions import IsAdminRole, is_admin
from core.serializers.content import ContentSerializer, RestoreVersionSerializer
from core.services import content as svc


def _iso(dt):
    return dt.isoformat() if dt else None


def serialize_content(c: Content) -> dict:
    return {
        'id': c.id,
        'title': c.title,
        'slug': c.slug,
        'content': c.content,
        'excerpt': c.excerpt,
        'type': c.type,
        'status': c.status,
        'publishDate': _iso(c.publish_date),
        'featuredImage': c.featured_image,
        'seoTitle': c.seo_title,
        'seoDescription': c.seo_description,
        'seoKeywords': c.seo_keywords,
        'author': c.author,
        'categories': c.categories,
        'tags': c.tags,
        'eventDate': _iso(c.event_date),
        'eventLocation': c.event_location,
        'eventType': c.event_type or None,
        'registrationLink': c.registration_link,
        'opportunityDeadline': _iso(c.opportunity_deadline),
        'opportunityType': c.opportunity_type or None,
        'eligibilityCriteria': c.eligibility_criteria,
        'cta': c.cta or None,
        'viewCount': c.view_count,
        'isFeatured': c.is_featured,
        'version': c.version,
        'url': c.url,
        'readingTime': c.reading_time,
        'createdAt': _iso(c.created_at),
        'updatedAt': _iso(c.updated_at),
    }


def serialize_version(v: ContentVersion) -> dict:
    return {
        'version': v.version,
        'snapshot': v.snapshot,
        'modifiedBy': v.modified_by_id,
        'createdAt': _iso(v.created_at),
    }


@api_view(['GET', 'POST'])
@permission_classes([AllowAny])
def content_list(request):
    admin = is_admin(request.user)
    if request.method == 'GET':
        page, limit = page_params(request.query_params, default_limit=10)
        qs = svc.filter_content(request.query_params, include_unpublished=admin)
        items, total = paginate(qs, page, limit)
        return Response({
            'success': True,
            'data': [serialize_content(c) for c in items],
            'pagination': content_meta(page, limit, total),
        })
    if not admin:
        raise Forbidden('Admin access required')
    s = ContentSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    item = svc.create_content(request.user, s.validated_data)
    return Response({'success': True, 'data': serialize_content(item)}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([AllowAny])
def content_detail(request, key: str):
    item = svc.find(key)
    admin = is_admin(request.user)
    if request.method == 'GET':
        if item.status != 'published' and not admin:
            raise NotFound('Content not found')
        svc.register_view(item)
        return Response({'success': True, 'data': serialize_content(item)})
    if not admin:
        raise Forbidden('Admin access required')
    if request.method == 'PUT':
        s = ContentSerializer(data=request.data, partial=True)
        s.is_valid(raise_exception=True)
        item = svc.update_content(item, request.user, s.validated_data)
        return Response({'success': True, 'data': serialize_content(item)})
    svc.delete_content(item, request.user)
    return Response({'success': True, 'message': 'Content deleted successfully'})


@api_view(['GET', 'POST'])
@permission_classes([IsAdminRole])
def content_versions(request, pk: int):
    item = svc.find(str(pk))
    if request.method == 'GET':
        return Response({'success': True, 'data': [serialize_version(v) for v in item.versions.all()]})
    s = RestoreVersionSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    item = svc.restore_version(item, request.user, s.validated_data['version'])
    return Response({'success': True, 'data': serialize_content(item)})
