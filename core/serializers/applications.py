from rest_framework import serializers

from core.models import ApplicationPackage, ApplicationSubmission, UserInterest


class InterestSerializer(serializers.Serializer):
    programId = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    schoolId = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    schoolName = serializers.CharField(max_length=255, required=False, allow_blank=True)
    programName = serializers.CharField(max_length=255, required=False, allow_blank=True)
    applicationUrl = serializers.CharField(max_length=1000, required=False, allow_blank=True)
    status = serializers.ChoiceField(choices=[s for s, _ in UserInterest.STATUS_CHOICES], required=False)
    priority = serializers.ChoiceField(choices=[p for p, _ in UserInterest.PRIORITY_CHOICES], required=False)
    notes = serializers.CharField(required=False, allow_blank=True)
    requiresInterview = serializers.BooleanField(required=False)
    interviewType = serializers.CharField(max_length=50, required=False, allow_blank=True)
    interviewDate = serializers.DateTimeField(required=False, allow_null=True)

    def validate(self, attrs):
        if not self.partial and not any(attrs.get(k) for k in ('programId', 'schoolId', 'schoolName', 'programName')):
            raise serializers.ValidationError(
                'Must specify either programId, schoolId, schoolName, or programName'
            )
        return attrs


class PackageDocumentSerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=ApplicationPackage.DOCUMENT_TYPES)
    name = serializers.CharField(max_length=255)
    status = serializers.ChoiceField(choices=ApplicationPackage.DOCUMENT_STATUSES, default='pending')
    required = serializers.BooleanField(default=True)
    documentId = serializers.CharField(max_length=100, required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)


class LinkedScholarshipSerializer(serializers.Serializer):
    scholarshipId = serializers.IntegerField(min_value=1)
    status = serializers.ChoiceField(choices=['interested', 'applied', 'awarded', 'rejected'], default='interested')
    appliedAt = serializers.DateTimeField(required=False, allow_null=True)

    def to_internal_value(self, data):
        value = super().to_internal_value(data)
        # stored in a JSON column
        if value.get('appliedAt'):
            value['appliedAt'] = value['appliedAt'].isoformat()
        return value


class PackageSerializer(serializers.Serializer):
    interestId = serializers.IntegerField(min_value=1)
    name = serializers.CharField(max_length=255)
    type = serializers.ChoiceField(choices=[t for t, _ in ApplicationPackage.TYPE_CHOICES], required=False)
    documents = PackageDocumentSerializer(many=True, required=False)
    linkedScholarships = LinkedScholarshipSerializer(many=True, required=False)
    applicationStatus = serializers.ChoiceField(
        choices=[s for s, _ in ApplicationPackage.APPLICATION_STATUS_CHOICES], required=False
    )
    decision = serializers.ChoiceField(
        choices=[d for d, _ in ApplicationPackage.DECISION_CHOICES], required=False, allow_blank=True
    )
    notes = serializers.CharField(required=False, allow_blank=True)


class DocumentStatusSerializer(serializers.Serializer):
    index = serializers.IntegerField(min_value=0, required=False)
    type = serializers.ChoiceField(choices=ApplicationPackage.DOCUMENT_TYPES, required=False)
    status = serializers.ChoiceField(choices=ApplicationPackage.DOCUMENT_STATUSES)
    documentId = serializers.CharField(max_length=100, required=False, allow_blank=True)

    def validate(self, attrs):
        if 'index' not in attrs and 'type' not in attrs:
            raise serializers.ValidationError('index or type is required')
        return attrs


class SubmissionSerializer(serializers.Serializer):
    templateId = serializers.IntegerField(min_value=1)
    answers = serializers.DictField(required=False)
    currentSectionId = serializers.CharField(max_length=64, required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)


class SubmissionUpdateSerializer(serializers.Serializer):
    answers = serializers.DictField(required=False)
    currentSectionId = serializers.CharField(max_length=64, required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError('Nothing to update')
        return attrs


class SubmissionReviewSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=ApplicationSubmission.REVIEW_STATUSES)
    note = serializers.CharField(max_length=500, required=False, allow_blank=True)
