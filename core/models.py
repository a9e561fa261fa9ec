"""
Database models for the education platform.

The models cover recommendation letters, the scholarship/program catalog,
application tracking, peer squads, admin messaging, content and analytics.
List-shaped and nested attributes that the front-end edits as a whole
(reminder intervals, package documents, template sections, squad goals)
are stored in JSON columns.
"""
from __future__ import annotations

import math
import re
import secrets
from datetime import timedelta

from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.core.validators import MaxValueValidator, MinValueValidator, RegexValidator
from django.db import models
from django.utils import timezone
from django.utils.text import slugify


class User(AbstractUser):
    """Platform account with a role.

    Students own recommendation requests, interests, packages and squads.
    ``admin`` and ``super_admin`` users run the admin console (messaging,
    content, analytics).
    """
    ROLE_STUDENT = 'student'
    ROLE_ADMIN = 'admin'
    ROLE_SUPER_ADMIN = 'super_admin'
    ROLE_CHOICES = [
        (ROLE_STUDENT, 'Student'),
        (ROLE_ADMIN, 'Administrator'),
        (ROLE_SUPER_ADMIN, 'Super Administrator'),
    ]
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_STUDENT, db_index=True)

    @property
    def is_admin_role(self) -> bool:
        return self.role in (self.ROLE_ADMIN, self.ROLE_SUPER_ADMIN)

    def display_name(self) -> str:
        return self.get_full_name() or self.username

    def __str__(self) -> str:
        return f"{self.username} ({self.role})"


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------
class School(models.Model):
    name = models.CharField(max_length=255, db_index=True)
    country = models.CharField(max_length=100, db_index=True)
    city = models.CharField(max_length=100, blank=True)
    website = models.URLField(blank=True)
    global_ranking = models.PositiveIntegerField(null=True, blank=True)
    description = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return self.name


class Program(models.Model):
    DEGREE_CHOICES = [(d, d) for d in (
        'Diploma', 'Bachelor', 'Master', 'MBA', 'PhD', 'Certificate', 'Short Course',
    )]
    MODE_CHOICES = [(m, m) for m in ('Full-time', 'Part-time', 'Online', 'Hybrid')]

    school = models.ForeignKey(School, on_delete=models.CASCADE, related_name='programs')
    name = models.CharField(max_length=255)
    degree_type = models.CharField(max_length=20, choices=DEGREE_CHOICES)
    field_of_study = models.CharField(max_length=255)
    subfield = models.CharField(max_length=255, blank=True)
    mode = models.CharField(max_length=20, choices=MODE_CHOICES, default='Full-time')
    duration = models.CharField(max_length=100, blank=True)
    program_level = models.CharField(max_length=50, blank=True)
    languages = models.JSONField(default=list, blank=True)
    tuition_fees = models.JSONField(default=dict, blank=True, help_text="{local, international, currency}")
    application_fee = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    program_summary = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['degree_type', 'field_of_study']),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.school_id})"


class Scholarship(models.Model):
    FREQUENCY_CHOICES = [(f, f) for f in ('One-time', 'Annual', 'Full Duration')]

    title = models.CharField(max_length=255)
    scholarship_details = models.TextField()
    provider = models.CharField(max_length=255, db_index=True)
    linked_school = models.CharField(max_length=255, blank=True)
    linked_program = models.CharField(max_length=255, blank=True)
    coverage = models.JSONField(default=list, blank=True)
    value = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(0)])
    currency = models.CharField(max_length=10)
    frequency = models.CharField(max_length=20, choices=FREQUENCY_CHOICES)
    number_of_awards_per_year = models.PositiveIntegerField(null=True, blank=True)
    eligibility = models.JSONField(default=dict, blank=True)
    application_requirements = models.JSONField(default=dict, blank=True)
    deadline = models.CharField(max_length=100, db_index=True)
    application_link = models.CharField(
        max_length=500,
        validators=[RegexValidator(r'^https?://.+', 'Please enter a valid URL')],
    )
    selection_criteria = models.JSONField(default=list, blank=True)
    tags = models.JSONField(default=list, blank=True)
    notes = models.TextField(blank=True)
    contact_info = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def save(self, *args, **kwargs):
        self.currency = (self.currency or '').strip().upper()
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return self.title


class SavedScholarship(models.Model):
    STATUS_CHOICES = [(s, s) for s in ('saved', 'applied', 'interested', 'not_interested')]

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='saved_scholarships')
    scholarship = models.ForeignKey(Scholarship, on_delete=models.CASCADE, related_name='saves')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='saved')
    notes = models.TextField(blank=True)
    reminder_date = models.DateTimeField(null=True, blank=True)
    is_reminder_set = models.BooleanField(default=False)
    saved_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = [('user', 'scholarship')]


# ---------------------------------------------------------------------------
# Recommendations
# ---------------------------------------------------------------------------
class Recipient(models.Model):
    """A person a student can ask for a recommendation letter."""
    COMMUNICATION_CHOICES = [(c, c) for c in ('email', 'phone', 'in_person')]

    emails = models.JSONField(default=list)
    primary_email = models.EmailField(db_index=True)
    name = models.CharField(max_length=255)
    title = models.CharField(max_length=255)
    institution = models.CharField(max_length=255)
    department = models.CharField(max_length=255, blank=True)
    phone_number = models.CharField(max_length=50, blank=True)
    office_address = models.CharField(max_length=500, blank=True)
    prefers_drafts = models.BooleanField(default=False)
    preferred_communication_method = models.CharField(
        max_length=20, choices=COMMUNICATION_CHOICES, default='email'
    )
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='recipients')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def save(self, *args, **kwargs):
        self.emails = [e.strip().lower() for e in (self.emails or []) if e and e.strip()]
        if self.emails:
            self.primary_email = self.emails[0]
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.name} <{self.primary_email}>"


def generate_secure_token() -> str:
    return secrets.token_hex(32)


def default_reminder_intervals() -> list[int]:
    return list(settings.DEFAULT_REMINDER_INTERVALS)


class RecommendationRequest(models.Model):
    STATUS_PENDING = 'pending'
    STATUS_SENT = 'sent'
    STATUS_RECEIVED = 'received'
    STATUS_OVERDUE = 'overdue'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = [(s, s) for s in (
        STATUS_PENDING, STATUS_SENT, STATUS_RECEIVED, STATUS_OVERDUE, STATUS_CANCELLED,
    )]
    OPEN_STATUSES = (STATUS_PENDING, STATUS_SENT)
    PRIORITY_CHOICES = [(p, p) for p in ('low', 'medium', 'high')]
    REQUEST_TYPE_CHOICES = [(t, t) for t in ('standard', 'school_direct')]
    SUBMISSION_METHOD_CHOICES = [(m, m) for m in ('platform_only', 'school_only', 'both')]
    COMMUNICATION_STYLE_CHOICES = [(s, s) for s in ('formal', 'polite', 'casual')]
    REMINDER_FREQUENCY_CHOICES = [(f, f) for f in ('daily', 'weekly', 'custom')]

    student = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='recommendation_requests'
    )
    recipient = models.ForeignKey(Recipient, on_delete=models.CASCADE, related_name='requests')
    application_ref = models.CharField(max_length=255, blank=True)
    scholarship = models.ForeignKey(
        Scholarship, null=True, blank=True, on_delete=models.SET_NULL, related_name='recommendation_requests'
    )
    title = models.CharField(max_length=255)
    description = models.TextField()
    deadline = models.DateTimeField()
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='medium')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    request_type = models.CharField(max_length=20, choices=REQUEST_TYPE_CHOICES, default='standard')
    submission_method = models.CharField(max_length=20, choices=SUBMISSION_METHOD_CHOICES, default='platform_only')
    communication_style = models.CharField(max_length=20, choices=COMMUNICATION_STYLE_CHOICES, default='polite')
    relationship_context = models.TextField()
    additional_context = models.TextField(blank=True)
    institution_name = models.CharField(max_length=255, blank=True)
    school_email = models.EmailField(blank=True)
    school_instructions = models.TextField(blank=True)
    include_draft = models.BooleanField(default=False)
    draft_content = models.TextField(blank=True)
    reminder_intervals = models.JSONField(default=default_reminder_intervals, blank=True)
    reminder_frequency = models.CharField(max_length=10, choices=REMINDER_FREQUENCY_CHOICES, default='custom')
    next_reminder_date = models.DateTimeField(null=True, blank=True, db_index=True)
    last_reminder_sent = models.DateTimeField(null=True, blank=True)
    sent_at = models.DateTimeField(null=True, blank=True)
    received_at = models.DateTimeField(null=True, blank=True)
    secure_token = models.CharField(max_length=64, unique=True, default=generate_secure_token)
    token_expires_at = models.DateTimeField()
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['student', 'status']),
            models.Index(fields=['status', 'deadline']),
        ]

    def first_reminder_date(self):
        if not self.reminder_intervals:
            return None
        return self.deadline - timedelta(days=int(self.reminder_intervals[0]))

    def save(self, *args, **kwargs):
        self.token_expires_at = self.deadline + timedelta(days=settings.RECOMMENDATION_TOKEN_TTL_DAYS)
        if self._state.adding and not self.next_reminder_date:
            self.next_reminder_date = self.first_reminder_date()
        if self.deadline < timezone.now() and self.status not in (self.STATUS_RECEIVED, self.STATUS_CANCELLED):
            self.status = self.STATUS_OVERDUE
        super().save(*args, **kwargs)

    @property
    def days_until_deadline(self) -> int:
        return math.ceil((self.deadline - timezone.now()).total_seconds() / 86400)

    @property
    def portal_url(self) -> str:
        return f"{settings.APP_BASE_URL}/recommendations/recipient/{self.secure_token}"

    def __str__(self) -> str:
        return f"{self.title} [{self.status}]"


class RecommendationLetter(models.Model):
    VERIFICATION_CHOICES = [(v, v) for v in ('email', 'manual')]

    request = models.ForeignKey(RecommendationRequest, on_delete=models.CASCADE, related_name='letters')
    recipient = models.ForeignKey(Recipient, on_delete=models.CASCADE, related_name='letters')
    content = models.TextField(blank=True)
    file_name = models.CharField(max_length=255, blank=True)
    file_url = models.CharField(max_length=1000, blank=True)
    file_type = models.CharField(max_length=100, blank=True)
    file_size = models.PositiveIntegerField(null=True, blank=True)
    submitted_at = models.DateTimeField(default=timezone.now)
    submitted_by = models.EmailField()
    is_verified = models.BooleanField(default=False)
    verified_at = models.DateTimeField(null=True, blank=True)
    verification_method = models.CharField(max_length=10, choices=VERIFICATION_CHOICES, blank=True)
    version = models.PositiveIntegerField(default=1)
    previous_version = models.ForeignKey('self', null=True, blank=True, on_delete=models.SET_NULL)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = [('request', 'version')]
        ordering = ['-version']

    def save(self, *args, **kwargs):
        if self._state.adding:
            latest = RecommendationLetter.objects.filter(request_id=self.request_id).order_by('-version').first()
            if latest:
                self.version = latest.version + 1
                self.previous_version = latest
        super().save(*args, **kwargs)


# ---------------------------------------------------------------------------
# Applications
# ---------------------------------------------------------------------------
class UserInterest(models.Model):
    STATUS_CHOICES = [(s, s) for s in (
        'interested', 'preparing', 'applied', 'interviewed', 'accepted', 'rejected', 'waitlisted',
    )]
    DECISION_STATUSES = ('accepted', 'rejected', 'waitlisted')
    PRIORITY_CHOICES = [(p, p) for p in ('high', 'medium', 'low')]

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='interests')
    program = models.ForeignKey(Program, null=True, blank=True, on_delete=models.SET_NULL, related_name='interests')
    school = models.ForeignKey(School, null=True, blank=True, on_delete=models.SET_NULL, related_name='interests')
    school_name = models.CharField(max_length=255, blank=True)
    program_name = models.CharField(max_length=255, blank=True)
    application_url = models.CharField(max_length=1000, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='interested')
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='medium')
    notes = models.TextField(blank=True)
    requires_interview = models.BooleanField(default=False)
    interview_type = models.CharField(max_length=50, blank=True)
    interview_date = models.DateTimeField(null=True, blank=True)
    applied_at = models.DateTimeField(null=True, blank=True)
    decision_date = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def target_name(self) -> str:
        if self.program_id:
            return self.program.name
        if self.school_id:
            return self.school.name
        return self.program_name or self.school_name


class ApplicationPackage(models.Model):
    TYPE_CHOICES = [(t, t) for t in ('program', 'scholarship', 'combined')]
    DOCUMENT_TYPES = (
        'transcript', 'personal_statement', 'cv', 'recommendation_letter', 'test_scores',
        'portfolio', 'scholarship_essay', 'financial_documents', 'other',
    )
    DOCUMENT_STATUSES = ('pending', 'uploaded', 'reviewed', 'approved')
    COMPLETED_DOCUMENT_STATUSES = ('uploaded', 'reviewed', 'approved')
    APPLICATION_STATUS_CHOICES = [(s, s) for s in (
        'not_started', 'in_progress', 'submitted', 'under_review', 'interview_scheduled', 'decision_made',
    )]
    DECISION_CHOICES = [(d, d) for d in ('accepted', 'rejected', 'waitlisted')]

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='application_packages')
    interest = models.ForeignKey(UserInterest, on_delete=models.CASCADE, related_name='packages')
    name = models.CharField(max_length=255)
    type = models.CharField(max_length=20, choices=TYPE_CHOICES, default='program')
    documents = models.JSONField(default=list, blank=True)
    progress = models.PositiveIntegerField(default=0, validators=[MaxValueValidator(100)])
    is_ready = models.BooleanField(default=False)
    applied_at = models.DateTimeField(null=True, blank=True)
    application_status = models.CharField(max_length=30, choices=APPLICATION_STATUS_CHOICES, default='not_started')
    decision = models.CharField(max_length=20, choices=DECISION_CHOICES, blank=True)
    decision_date = models.DateTimeField(null=True, blank=True)
    linked_scholarships = models.JSONField(default=list, blank=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['user', 'application_status']),
        ]

    def compute_progress(self) -> int:
        required = [d for d in (self.documents or []) if d.get('required')]
        if not required:
            return 0
        done = [d for d in required if d.get('status') in self.COMPLETED_DOCUMENT_STATUSES]
        return round(len(done) / len(required) * 100)

    def save(self, *args, **kwargs):
        self.progress = self.compute_progress()
        self.is_ready = self.progress == 100
        super().save(*args, **kwargs)


class ApplicationTemplate(models.Model):
    """Dynamic, multi-section application form attached to a scholarship.

    ``sections`` holds the published form; ``draft_sections`` holds the
    auto-saved working copy edited by the builder until it is published.
    """
    scholarship = models.ForeignKey(Scholarship, on_delete=models.CASCADE, related_name='templates')
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    version = models.CharField(max_length=20, default='1.0.0')
    is_active = models.BooleanField(default=True, db_index=True)
    sections = models.JSONField(default=list)
    draft_sections = models.JSONField(null=True, blank=True)
    draft_saved_at = models.DateTimeField(null=True, blank=True)
    estimated_time = models.PositiveIntegerField(default=30, validators=[MinValueValidator(1)])
    instructions = models.TextField(blank=True)
    submission_deadline = models.DateTimeField(null=True, blank=True)
    allow_draft_saving = models.BooleanField(default=True)
    require_email_verification = models.BooleanField(default=False)
    require_phone_verification = models.BooleanField(default=False)
    max_file_size = models.PositiveIntegerField(default=10)
    allowed_file_types = models.JSONField(default=list, blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, on_delete=models.SET_NULL, related_name='created_templates'
    )
    last_modified_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name='modified_templates'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    DEFAULT_FILE_TYPES = ['pdf', 'doc', 'docx', 'jpg', 'png']

    def save(self, *args, **kwargs):
        if not self.allowed_file_types:
            self.allowed_file_types = list(self.DEFAULT_FILE_TYPES)
        super().save(*args, **kwargs)

    def working_sections(self) -> list:
        return self.draft_sections if self.draft_sections is not None else self.sections


class ApplicationSubmission(models.Model):
    """A student's answers to a published template.

    ``answers`` maps question id to the submitted value. One submission per
    student and template.
    """
    STATUS_DRAFT = 'draft'
    STATUS_IN_PROGRESS = 'in_progress'
    STATUS_SUBMITTED = 'submitted'
    STATUS_CHOICES = [(s, s) for s in (
        'draft', 'in_progress', 'submitted', 'under_review', 'approved', 'rejected', 'waitlisted', 'withdrawn',
    )]
    EDITABLE_STATUSES = ('draft', 'in_progress')
    REVIEW_STATUSES = ('under_review', 'approved', 'rejected', 'waitlisted')

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='submissions')
    template = models.ForeignKey(ApplicationTemplate, on_delete=models.CASCADE, related_name='submissions')
    scholarship = models.ForeignKey(Scholarship, on_delete=models.CASCADE, related_name='submissions')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_DRAFT, db_index=True)
    answers = models.JSONField(default=dict, blank=True)
    current_section_id = models.CharField(max_length=64, blank=True)
    progress = models.PositiveIntegerField(default=0, validators=[MaxValueValidator(100)])
    notes = models.TextField(blank=True)
    template_version = models.CharField(max_length=20, blank=True)
    started_at = models.DateTimeField(default=timezone.now)
    last_activity_at = models.DateTimeField(default=timezone.now)
    submitted_at = models.DateTimeField(null=True, blank=True)
    decided_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['user', 'template'], name='uniq_submission_user_template'),
        ]
        indexes = [
            models.Index(fields=['user', 'status']),
            models.Index(fields=['scholarship', 'status']),
        ]

    @property
    def is_editable(self) -> bool:
        return self.status in self.EDITABLE_STATUSES


# ---------------------------------------------------------------------------
# Squads
# ---------------------------------------------------------------------------
class Squad(models.Model):
    VISIBILITY_CHOICES = [(v, v) for v in ('public', 'private', 'invite_only')]
    FORMATION_CHOICES = [(f, f) for f in ('manual', 'auto_matched', 'invited')]
    SQUAD_TYPE_CHOICES = [(t, t) for t in ('primary', 'secondary')]
    GOAL_TYPES = ('applications', 'documents', 'reviews', 'scholarships')
    GOAL_TIMEFRAMES = ('weekly', 'monthly', 'semester')

    name = models.CharField(max_length=100)
    description = models.CharField(max_length=500)
    max_members = models.PositiveSmallIntegerField(validators=[MinValueValidator(2), MaxValueValidator(12)])
    visibility = models.CharField(max_length=20, choices=VISIBILITY_CHOICES, default='invite_only')
    formation_type = models.CharField(max_length=20, choices=FORMATION_CHOICES, default='manual')
    academic_level = models.JSONField(default=list, blank=True)
    field_of_study = models.JSONField(default=list, blank=True)
    geographic_region = models.JSONField(default=list, blank=True)
    squad_type = models.CharField(max_length=20, choices=SQUAD_TYPE_CHOICES, default='primary')
    creator = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='created_squads')
    members = models.ManyToManyField(settings.AUTH_USER_MODEL, related_name='squads', blank=True)
    goals = models.JSONField(default=list, blank=True)
    total_applications = models.PositiveIntegerField(default=0)
    total_documents = models.PositiveIntegerField(default=0)
    total_reviews = models.PositiveIntegerField(default=0)
    average_activity_score = models.PositiveIntegerField(default=0)
    last_activity_at = models.DateTimeField(default=timezone.now)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def member_count(self) -> int:
        return self.members.count()

    @property
    def activity_level(self) -> str:
        if self.average_activity_score >= 80:
            return 'high'
        if self.average_activity_score >= 50:
            return 'medium'
        return 'low'

    @property
    def completion_percentage(self) -> int:
        if not self.goals:
            return 0
        total = sum(g.get('progressPercentage', 0) for g in self.goals)
        return round(total / len(self.goals))

    def is_member(self, user) -> bool:
        return self.members.filter(pk=user.pk).exists()


# ---------------------------------------------------------------------------
# Admin messaging
# ---------------------------------------------------------------------------
class Message(models.Model):
    TYPE_CHOICES = [(t, t) for t in ('general', 'urgent', 'announcement', 'task', 'notification')]
    PRIORITY_CHOICES = [(p, p) for p in ('low', 'medium', 'high', 'urgent')]

    subject = models.CharField(max_length=200)
    content = models.TextField()
    message_type = models.CharField(max_length=20, choices=TYPE_CHOICES, default='general')
    sender = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='sent_messages')
    recipients = models.ManyToManyField(settings.AUTH_USER_MODEL, related_name='received_messages')
    cc_recipients = models.ManyToManyField(settings.AUTH_USER_MODEL, related_name='cc_messages', blank=True)
    is_read = models.BooleanField(default=False)
    is_archived = models.BooleanField(default=False)
    is_pinned = models.BooleanField(default=False)
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='medium')
    category = models.CharField(max_length=100, blank=True)
    tags = models.JSONField(default=list, blank=True)
    attachments = models.JSONField(default=list, blank=True)
    parent_message = models.ForeignKey('self', null=True, blank=True, on_delete=models.SET_NULL, related_name='replies')
    thread_id = models.CharField(max_length=64, blank=True, db_index=True)
    read_at = models.DateTimeField(null=True, blank=True)
    archived_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['sender', 'created_at']),
            models.Index(fields=['is_read', 'is_archived']),
        ]

    @property
    def preview(self) -> str:
        if len(self.content) > 100:
            return self.content[:100] + '...'
        return self.content


# ---------------------------------------------------------------------------
# Content
# ---------------------------------------------------------------------------
slug_validator = RegexValidator(r'^[a-z0-9-]+$', 'Slug can only contain lowercase letters, numbers and hyphens')


class Content(models.Model):
    TYPE_CHOICES = [(t, t) for t in ('blog', 'opportunity', 'event')]
    STATUS_CHOICES = [(s, s) for s in ('draft', 'published', 'archived')]
    EVENT_TYPE_CHOICES = [(t, t) for t in ('online', 'offline', 'hybrid')]
    OPPORTUNITY_TYPE_CHOICES = [(t, t) for t in (
        'scholarship', 'internship', 'job', 'fellowship', 'competition', 'other',
    )]

    title = models.CharField(max_length=200)
    slug = models.CharField(max_length=220, unique=True, validators=[slug_validator])
    content = models.TextField()
    excerpt = models.CharField(max_length=300)
    type = models.CharField(max_length=20, choices=TYPE_CHOICES, db_index=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='draft', db_index=True)
    publish_date = models.DateTimeField(null=True, blank=True)
    featured_image = models.CharField(max_length=1000, blank=True)
    seo_title = models.CharField(max_length=60, blank=True)
    seo_description = models.CharField(max_length=160, blank=True)
    seo_keywords = models.JSONField(default=list, blank=True)
    author = models.CharField(max_length=255)
    categories = models.JSONField(default=list, blank=True)
    tags = models.JSONField(default=list, blank=True)
    event_date = models.DateTimeField(null=True, blank=True)
    event_location = models.CharField(max_length=255, blank=True)
    event_type = models.CharField(max_length=10, choices=EVENT_TYPE_CHOICES, blank=True)
    registration_link = models.CharField(max_length=1000, blank=True)
    opportunity_deadline = models.DateTimeField(null=True, blank=True)
    opportunity_type = models.CharField(max_length=20, choices=OPPORTUNITY_TYPE_CHOICES, blank=True)
    eligibility_criteria = models.JSONField(default=list, blank=True)
    cta = models.JSONField(default=dict, blank=True)
    view_count = models.PositiveIntegerField(default=0)
    is_featured = models.BooleanField(default=False)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, on_delete=models.SET_NULL, related_name='created_content'
    )
    last_modified_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name='modified_content'
    )
    version = models.PositiveIntegerField(default=1)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['type', 'status', 'publish_date']),
        ]

    @staticmethod
    def slug_from_title(title: str) -> str:
        slug = slugify(title or '')
        return re.sub(r'-+', '-', slug).strip('-')

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = self.slug_from_title(self.title)
        if self.status == 'published' and not self.publish_date:
            self.publish_date = timezone.now()
        super().save(*args, **kwargs)

    @property
    def url(self) -> str:
        return f"/content/{self.slug}"

    @property
    def reading_time(self) -> int:
        return math.ceil(len(self.content.split()) / 200)


class ContentVersion(models.Model):
    """Snapshot of a content item taken before each update."""
    content = models.ForeignKey(Content, on_delete=models.CASCADE, related_name='versions')
    version = models.PositiveIntegerField()
    snapshot = models.JSONField(default=dict)
    modified_by = models.ForeignKey(settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = [('content', 'version')]
        ordering = ['-version']


# ---------------------------------------------------------------------------
# Analytics
# ---------------------------------------------------------------------------
class PageView(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL)
    session_id = models.CharField(max_length=100, db_index=True)
    page = models.CharField(max_length=1000)
    title = models.CharField(max_length=500, blank=True)
    referrer = models.CharField(max_length=1000, blank=True)
    user_agent = models.CharField(max_length=1000, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    device = models.CharField(max_length=20, blank=True)
    browser = models.CharField(max_length=50, blank=True)
    os = models.CharField(max_length=50, blank=True)
    time_on_page = models.PositiveIntegerField(default=0)
    scroll_depth = models.PositiveSmallIntegerField(default=0, validators=[MaxValueValidator(100)])
    is_bounce = models.BooleanField(default=True)
    timestamp = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        indexes = [
            models.Index(fields=['page', 'timestamp']),
        ]


class UserSession(models.Model):
    session_id = models.CharField(max_length=100, unique=True)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL)
    start_time = models.DateTimeField(default=timezone.now, db_index=True)
    end_time = models.DateTimeField(null=True, blank=True)
    duration = models.PositiveIntegerField(default=0)
    page_views = models.PositiveIntegerField(default=0)
    entry_page = models.CharField(max_length=1000, blank=True)
    exit_page = models.CharField(max_length=1000, blank=True)
    is_active = models.BooleanField(default=True)
    device = models.CharField(max_length=20, blank=True)
    browser = models.CharField(max_length=50, blank=True)
    os = models.CharField(max_length=50, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    updated_at = models.DateTimeField(default=timezone.now, db_index=True)


class UserEvent(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL)
    session_id = models.CharField(max_length=100, db_index=True)
    event_type = models.CharField(max_length=50)
    event_name = models.CharField(max_length=100)
    page = models.CharField(max_length=1000, blank=True)
    properties = models.JSONField(default=dict, blank=True)
    timestamp = models.DateTimeField(default=timezone.now, db_index=True)


# ---------------------------------------------------------------------------
# Audit
# ---------------------------------------------------------------------------
class Notification(models.Model):
    TYPE_CHOICES = [(t, t) for t in (
        'squad_activity', 'goal_progress', 'help_request', 'achievement', 'invitation', 'reminder',
        'application_status', 'letter_received',
    )]
    PRIORITY_CHOICES = [(p, p) for p in ('low', 'medium', 'high', 'urgent')]

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='notifications')
    type = models.CharField(max_length=30, choices=TYPE_CHOICES)
    title = models.CharField(max_length=200)
    message = models.CharField(max_length=1000)
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='medium')
    content = models.JSONField(default=dict, blank=True, help_text="{squadId, submissionId, actionUrl, ...}")
    is_read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)
    expires_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['user', 'is_read']),
            models.Index(fields=['user', 'created_at']),
        ]


class AuditEvent(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.IntegerField(blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at']),
            models.Index(fields=['object_type', 'object_id', 'created_at']),
        ]
