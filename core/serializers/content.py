from rest_framework import serializers

from core.models import Content


class CtaSerializer(serializers.Serializer):
    text = serializers.CharField(max_length=100)
    link = serializers.CharField(max_length=1000)
    type = serializers.ChoiceField(choices=['primary', 'secondary', 'outline'], default='primary')


class ContentSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=200)
    slug = serializers.RegexField(r'^[a-z0-9-]+$', max_length=220, required=False, allow_blank=True)
    content = serializers.CharField()
    excerpt = serializers.CharField(max_length=300)
    type = serializers.ChoiceField(choices=[t for t, _ in Content.TYPE_CHOICES])
    status = serializers.ChoiceField(choices=[s for s, _ in Content.STATUS_CHOICES], required=False)
    publishDate = serializers.DateTimeField(source='publish_date', required=False, allow_null=True)
    featuredImage = serializers.CharField(source='featured_image', max_length=1000, required=False, allow_blank=True)
    seoTitle = serializers.CharField(source='seo_title', max_length=60, required=False, allow_blank=True)
    seoDescription = serializers.CharField(source='seo_description', max_length=160, required=False, allow_blank=True)
    seoKeywords = serializers.ListField(source='seo_keywords', child=serializers.CharField(max_length=50), required=False)
    author = serializers.CharField(max_length=255)
    categories = serializers.ListField(child=serializers.CharField(max_length=50), required=False)
    tags = serializers.ListField(child=serializers.CharField(max_length=50), required=False)
    eventDate = serializers.DateTimeField(source='event_date', required=False, allow_null=True)
    eventLocation = serializers.CharField(source='event_location', max_length=255, required=False, allow_blank=True)
    eventType = serializers.ChoiceField(
        source='event_type', choices=[t for t, _ in Content.EVENT_TYPE_CHOICES], required=False, allow_blank=True
    )
    registrationLink = serializers.CharField(source='registration_link', max_length=1000, required=False, allow_blank=True)
    opportunityDeadline = serializers.DateTimeField(source='opportunity_deadline', required=False, allow_null=True)
    opportunityType = serializers.ChoiceField(
        source='opportunity_type', choices=[t for t, _ in Content.OPPORTUNITY_TYPE_CHOICES],
        required=False, allow_blank=True,
    )
    eligibilityCriteria = serializers.ListField(
        source='eligibility_criteria', child=serializers.CharField(max_length=500), required=False
    )
    cta = CtaSerializer(required=False, allow_null=True)
    isFeatured = serializers.BooleanField(source='is_featured', required=False)


class RestoreVersionSerializer(serializers.Serializer):
    version = serializers.IntegerField(min_value=1)
