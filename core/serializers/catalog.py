from rest_framework import serializers

from core.models import Program, SavedScholarship, Scholarship


class SchoolSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    country = serializers.CharField(max_length=100)
    city = serializers.CharField(max_length=100, required=False, allow_blank=True)
    website = serializers.URLField(required=False, allow_blank=True)
    globalRanking = serializers.IntegerField(min_value=1, required=False, allow_null=True, source='global_ranking')
    description = serializers.CharField(required=False, allow_blank=True)


class TuitionFeesSerializer(serializers.Serializer):
    local = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False, coerce_to_string=False)
    international = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False, coerce_to_string=False)
    currency = serializers.CharField(max_length=10, required=False)


class ProgramSerializer(serializers.Serializer):
    schoolId = serializers.IntegerField(min_value=1, source='school_id')
    name = serializers.CharField(max_length=255)
    degreeType = serializers.ChoiceField(choices=[d for d, _ in Program.DEGREE_CHOICES], source='degree_type')
    fieldOfStudy = serializers.CharField(max_length=255, source='field_of_study')
    subfield = serializers.CharField(max_length=255, required=False, allow_blank=True)
    mode = serializers.ChoiceField(choices=[m for m, _ in Program.MODE_CHOICES], required=False)
    duration = serializers.CharField(max_length=100, required=False, allow_blank=True)
    programLevel = serializers.CharField(max_length=50, required=False, allow_blank=True, source='program_level')
    languages = serializers.ListField(child=serializers.CharField(max_length=50), required=False)
    tuitionFees = TuitionFeesSerializer(required=False, source='tuition_fees')
    applicationFee = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=0, required=False, allow_null=True, source='application_fee'
    )
    programSummary = serializers.CharField(required=False, allow_blank=True, source='program_summary')

    def validate_tuitionFees(self, v):
        # JSON column: keep numbers JSON-serialisable
        return {k: (float(val) if k != 'currency' else val.upper()) for k, val in v.items()}


class ScholarshipSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=255)
    scholarshipDetails = serializers.CharField(source='scholarship_details')
    provider = serializers.CharField(max_length=255)
    linkedSchool = serializers.CharField(max_length=255, required=False, allow_blank=True, source='linked_school')
    linkedProgram = serializers.CharField(max_length=255, required=False, allow_blank=True, source='linked_program')
    coverage = serializers.ListField(child=serializers.CharField(max_length=255), required=False)
    value = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    currency = serializers.CharField(max_length=10)
    frequency = serializers.ChoiceField(choices=[f for f, _ in Scholarship.FREQUENCY_CHOICES])
    numberOfAwardsPerYear = serializers.IntegerField(
        min_value=1, required=False, allow_null=True, source='number_of_awards_per_year'
    )
    eligibility = serializers.DictField(required=False)
    applicationRequirements = serializers.DictField(required=False, source='application_requirements')
    deadline = serializers.CharField(max_length=100)
    applicationLink = serializers.RegexField(
        r'^https?://.+', max_length=500, source='application_link',
        error_messages={'invalid': 'Please enter a valid URL'},
    )
    selectionCriteria = serializers.ListField(
        child=serializers.CharField(max_length=500), required=False, source='selection_criteria'
    )
    tags = serializers.ListField(child=serializers.CharField(max_length=100), required=False)
    notes = serializers.CharField(required=False, allow_blank=True)
    contactInfo = serializers.DictField(required=False, source='contact_info')

    def validate_eligibility(self, v):
        gpa = v.get('minGPA')
        if gpa is not None and not (0 <= float(gpa) <= 4):
            raise serializers.ValidationError('minGPA must be between 0 and 4')
        return v


class SaveScholarshipSerializer(serializers.Serializer):
    scholarshipId = serializers.IntegerField(min_value=1)
    status = serializers.ChoiceField(choices=[s for s, _ in SavedScholarship.STATUS_CHOICES], required=False)
    notes = serializers.CharField(required=False, allow_blank=True)
    reminderDate = serializers.DateTimeField(required=False, allow_null=True)
