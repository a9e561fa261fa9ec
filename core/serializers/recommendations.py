from django.utils import timezone
from rest_framework import serializers

from core.models import Recipient, RecommendationRequest


class RecipientSerializer(serializers.Serializer):
    emails = serializers.ListField(child=serializers.EmailField(), min_length=1)
    name = serializers.CharField(max_length=255)
    title = serializers.CharField(max_length=255)
    institution = serializers.CharField(max_length=255)
    department = serializers.CharField(max_length=255, required=False, allow_blank=True)
    phoneNumber = serializers.CharField(max_length=50, required=False, allow_blank=True)
    officeAddress = serializers.CharField(max_length=500, required=False, allow_blank=True)
    prefersDrafts = serializers.BooleanField(required=False)
    preferredCommunicationMethod = serializers.ChoiceField(
        choices=[c for c, _ in Recipient.COMMUNICATION_CHOICES], required=False
    )

    def validate_emails(self, v):
        cleaned = []
        for e in v:
            e = e.strip().lower()
            if e not in cleaned:
                cleaned.append(e)
        return cleaned


def _future(v):
    if v <= timezone.now():
        raise serializers.ValidationError('Deadline must be in the future')
    return v


class ReminderIntervalsField(serializers.ListField):
    child = serializers.IntegerField(min_value=0, max_value=365)


class RequestCreateSerializer(serializers.Serializer):
    recipientId = serializers.IntegerField(min_value=1)
    title = serializers.CharField(max_length=255)
    description = serializers.CharField()
    deadline = serializers.DateTimeField(validators=[_future])
    relationshipContext = serializers.CharField()
    priority = serializers.ChoiceField(choices=[p for p, _ in RecommendationRequest.PRIORITY_CHOICES], required=False)
    includeDraft = serializers.BooleanField(required=False)
    draftContent = serializers.CharField(required=False, allow_blank=True)
    applicationId = serializers.CharField(max_length=255, required=False, allow_blank=True)
    scholarshipId = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    reminderIntervals = ReminderIntervalsField(required=False)
    reminderFrequency = serializers.ChoiceField(
        choices=[f for f, _ in RecommendationRequest.REMINDER_FREQUENCY_CHOICES], required=False
    )
    requestType = serializers.ChoiceField(
        choices=[t for t, _ in RecommendationRequest.REQUEST_TYPE_CHOICES], required=False
    )
    submissionMethod = serializers.ChoiceField(
        choices=[m for m, _ in RecommendationRequest.SUBMISSION_METHOD_CHOICES], required=False
    )
    communicationStyle = serializers.ChoiceField(
        choices=[s for s, _ in RecommendationRequest.COMMUNICATION_STYLE_CHOICES], required=False
    )
    additionalContext = serializers.CharField(required=False, allow_blank=True)
    institutionName = serializers.CharField(max_length=255, required=False, allow_blank=True)
    schoolEmail = serializers.EmailField(required=False, allow_blank=True)
    schoolInstructions = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):
        if attrs.get('requestType') == 'school_direct':
            if not attrs.get('institutionName') or not attrs.get('schoolEmail'):
                raise serializers.ValidationError('institutionName and schoolEmail are required for school_direct requests')
        return attrs


class RequestUpdateSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=255, required=False)
    description = serializers.CharField(required=False)
    deadline = serializers.DateTimeField(required=False, validators=[_future])
    priority = serializers.ChoiceField(choices=[p for p, _ in RecommendationRequest.PRIORITY_CHOICES], required=False)
    reminderIntervals = ReminderIntervalsField(required=False)
    includeDraft = serializers.BooleanField(required=False)
    draftContent = serializers.CharField(required=False, allow_blank=True)
    relationshipContext = serializers.CharField(required=False)
    additionalContext = serializers.CharField(required=False, allow_blank=True)


class LetterSubmitSerializer(serializers.Serializer):
    content = serializers.CharField(required=False, allow_blank=True)
    fileUrl = serializers.CharField(max_length=1000, required=False, allow_blank=True)
    fileName = serializers.CharField(max_length=255, required=False, allow_blank=True)
    fileType = serializers.CharField(max_length=100, required=False, allow_blank=True)
    fileSize = serializers.IntegerField(min_value=0, required=False)

    def validate(self, attrs):
        if not (attrs.get('content') or '').strip() and not attrs.get('fileUrl'):
            raise serializers.ValidationError('Either content or fileUrl is required')
        return attrs
