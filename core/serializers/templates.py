from rest_framework import serializers

from core.services.form_builder import OPERATIONS


class TemplateSerializer(serializers.Serializer):
    scholarshipId = serializers.IntegerField(min_value=1)
    title = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, allow_blank=True)
    version = serializers.RegexField(r'^\d+\.\d+\.\d+$', max_length=20, required=False)
    isActive = serializers.BooleanField(required=False)
    sections = serializers.ListField(child=serializers.DictField(), required=False)
    estimatedTime = serializers.IntegerField(min_value=1, required=False)
    instructions = serializers.CharField(required=False, allow_blank=True)
    submissionDeadline = serializers.DateTimeField(required=False, allow_null=True)
    allowDraftSaving = serializers.BooleanField(required=False)
    requireEmailVerification = serializers.BooleanField(required=False)
    requirePhoneVerification = serializers.BooleanField(required=False)
    maxFileSize = serializers.IntegerField(min_value=1, required=False)
    allowedFileTypes = serializers.ListField(child=serializers.CharField(max_length=10), required=False)


class AutosaveSerializer(serializers.Serializer):
    sections = serializers.ListField(child=serializers.DictField())


class BuilderOperationSerializer(serializers.Serializer):
    op = serializers.ChoiceField(choices=sorted(OPERATIONS))
    sectionIndex = serializers.IntegerField(min_value=0, required=False)
    questionIndex = serializers.IntegerField(min_value=0, required=False)
    optionIndex = serializers.IntegerField(min_value=0, required=False)
    startIndex = serializers.IntegerField(min_value=0, required=False)
    endIndex = serializers.IntegerField(min_value=0, required=False)
    questionType = serializers.CharField(max_length=20, required=False)
    changes = serializers.DictField(required=False)
