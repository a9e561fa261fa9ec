from rest_framework import serializers


class NotificationActionSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=['markAsRead', 'markAllAsRead'])
    notificationId = serializers.IntegerField(min_value=1, required=False)

    def validate(self, attrs):
        if attrs['action'] == 'markAsRead' and not attrs.get('notificationId'):
            raise serializers.ValidationError('notificationId is required for markAsRead')
        return attrs
