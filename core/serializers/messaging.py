from rest_framework import serializers

from core.models import Message


class AttachmentSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    url = serializers.CharField(max_length=1000)
    size = serializers.IntegerField(min_value=0, required=False)
    contentType = serializers.CharField(max_length=100, required=False)


class MessageSerializer(serializers.Serializer):
    subject = serializers.CharField(max_length=200)
    content = serializers.CharField()
    recipients = serializers.ListField(child=serializers.IntegerField(min_value=1), min_length=1)
    ccRecipients = serializers.ListField(child=serializers.IntegerField(min_value=1), required=False)
    messageType = serializers.ChoiceField(choices=[t for t, _ in Message.TYPE_CHOICES], required=False)
    priority = serializers.ChoiceField(choices=[p for p, _ in Message.PRIORITY_CHOICES], required=False)
    category = serializers.CharField(max_length=100, required=False, allow_blank=True)
    tags = serializers.ListField(child=serializers.CharField(max_length=50), required=False)
    attachments = AttachmentSerializer(many=True, required=False)
    parentMessageId = serializers.IntegerField(min_value=1, required=False, allow_null=True)


class MessageFlagsSerializer(serializers.Serializer):
    isRead = serializers.BooleanField(required=False)
    isArchived = serializers.BooleanField(required=False)
    isPinned = serializers.BooleanField(required=False)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError('Nothing to update')
        return attrs
