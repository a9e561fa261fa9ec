from rest_framework import serializers

from core.models import Squad


class GoalSerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=Squad.GOAL_TYPES)
    target = serializers.IntegerField(min_value=1)
    timeframe = serializers.ChoiceField(choices=Squad.GOAL_TIMEFRAMES)
    startDate = serializers.DateTimeField(required=False)
    endDate = serializers.DateTimeField(required=False)
    description = serializers.CharField(max_length=500, required=False, allow_blank=True)
    individualTarget = serializers.IntegerField(min_value=1, required=False, allow_null=True)

    def validate(self, attrs):
        if attrs.get('startDate') and attrs.get('endDate') and attrs['endDate'] <= attrs['startDate']:
            raise serializers.ValidationError('endDate must be after startDate')
        return attrs


class SquadSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)
    description = serializers.CharField(max_length=500)
    maxMembers = serializers.IntegerField(min_value=2, max_value=12)
    visibility = serializers.ChoiceField(choices=[v for v, _ in Squad.VISIBILITY_CHOICES], required=False)
    formationType = serializers.ChoiceField(choices=[f for f, _ in Squad.FORMATION_CHOICES], required=False)
    academicLevel = serializers.ListField(child=serializers.CharField(max_length=50), required=False)
    fieldOfStudy = serializers.ListField(child=serializers.CharField(max_length=100), required=False)
    geographicRegion = serializers.ListField(child=serializers.CharField(max_length=100), required=False)
    squadType = serializers.ChoiceField(choices=[t for t, _ in Squad.SQUAD_TYPE_CHOICES], required=False)
    goals = GoalSerializer(many=True, required=False)


class MembershipSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=['join', 'leave'])


class ProgressSerializer(serializers.Serializer):
    goalType = serializers.ChoiceField(choices=Squad.GOAL_TYPES)
    progress = serializers.IntegerField(min_value=0)
