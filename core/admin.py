"""
Django admin registrations for the core models.

Superusers can inspect and edit platform data via ``/admin/``.
"""

from django.contrib import admin

from .models import (
    ApplicationPackage,
    ApplicationSubmission,
    ApplicationTemplate,
    AuditEvent,
    Content,
    ContentVersion,
    Message,
    Notification,
    PageView,
    Program,
    Recipient,
    RecommendationLetter,
    RecommendationRequest,
    SavedScholarship,
    Scholarship,
    School,
    Squad,
    User,
    UserEvent,
    UserInterest,
    UserSession,
)


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('username', 'email', 'role', 'is_staff', 'is_superuser', 'last_login')
    list_filter = ('role',)
    search_fields = ('username', 'email', 'first_name', 'last_name')


@admin.register(School)
class SchoolAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'country', 'city', 'global_ranking')
    list_filter = ('country',)
    search_fields = ('name', 'city')


@admin.register(Program)
class ProgramAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'school', 'degree_type', 'field_of_study', 'mode')
    list_filter = ('degree_type', 'mode')
    search_fields = ('name', 'field_of_study', 'school__name')


@admin.register(Scholarship)
class ScholarshipAdmin(admin.ModelAdmin):
    list_display = ('id', 'title', 'provider', 'value', 'currency', 'deadline')
    list_filter = ('frequency', 'currency')
    search_fields = ('title', 'provider')


@admin.register(SavedScholarship)
class SavedScholarshipAdmin(admin.ModelAdmin):
    list_display = ('user', 'scholarship', 'status', 'saved_at')
    list_filter = ('status',)


@admin.register(Recipient)
class RecipientAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'primary_email', 'institution', 'created_by')
    search_fields = ('name', 'primary_email', 'institution')


@admin.register(RecommendationRequest)
class RecommendationRequestAdmin(admin.ModelAdmin):
    list_display = ('id', 'title', 'student', 'recipient', 'status', 'deadline', 'next_reminder_date')
    list_filter = ('status', 'priority', 'request_type')
    search_fields = ('title', 'student__username', 'recipient__name')
    readonly_fields = ('secure_token', 'token_expires_at')


@admin.register(RecommendationLetter)
class RecommendationLetterAdmin(admin.ModelAdmin):
    list_display = ('request', 'version', 'submitted_by', 'submitted_at', 'is_verified')
    list_filter = ('is_verified',)


@admin.register(UserInterest)
class UserInterestAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'school_name', 'program_name', 'status', 'priority')
    list_filter = ('status', 'priority')


@admin.register(ApplicationPackage)
class ApplicationPackageAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'user', 'type', 'progress', 'is_ready', 'application_status')
    list_filter = ('type', 'application_status', 'is_ready')
    search_fields = ('name', 'user__username')


@admin.register(ApplicationTemplate)
class ApplicationTemplateAdmin(admin.ModelAdmin):
    list_display = ('id', 'title', 'scholarship', 'version', 'is_active', 'draft_saved_at')
    list_filter = ('is_active',)
    search_fields = ('title', 'scholarship__title')


@admin.register(ApplicationSubmission)
class ApplicationSubmissionAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'template', 'status', 'progress', 'submitted_at')
    list_filter = ('status',)
    search_fields = ('user__username', 'template__title')


@admin.register(Squad)
class SquadAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'creator', 'squad_type', 'visibility', 'max_members', 'last_activity_at')
    list_filter = ('squad_type', 'visibility', 'formation_type')
    search_fields = ('name', 'creator__username')


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    list_display = ('id', 'subject', 'sender', 'message_type', 'priority', 'is_read', 'created_at')
    list_filter = ('message_type', 'priority', 'is_read', 'is_archived')
    search_fields = ('subject', 'sender__username', 'thread_id')


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'type', 'title', 'priority', 'is_read', 'created_at')
    list_filter = ('type', 'priority', 'is_read')


@admin.register(Content)
class ContentAdmin(admin.ModelAdmin):
    list_display = ('id', 'title', 'slug', 'type', 'status', 'publish_date', 'view_count', 'version')
    list_filter = ('type', 'status', 'is_featured')
    search_fields = ('title', 'slug', 'author')


@admin.register(ContentVersion)
class ContentVersionAdmin(admin.ModelAdmin):
    list_display = ('content', 'version', 'modified_by', 'created_at')


@admin.register(PageView)
class PageViewAdmin(admin.ModelAdmin):
    list_display = ('page', 'session_id', 'user', 'device', 'browser', 'timestamp')
    list_filter = ('device', 'browser')


@admin.register(UserSession)
class UserSessionAdmin(admin.ModelAdmin):
    list_display = ('session_id', 'user', 'start_time', 'duration', 'page_views', 'is_active')
    list_filter = ('is_active', 'device')


@admin.register(UserEvent)
class UserEventAdmin(admin.ModelAdmin):
    list_display = ('event_type', 'event_name', 'session_id', 'user', 'timestamp')
    list_filter = ('event_type',)


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('action', 'object_type', 'object_id', 'user', 'created_at')
    list_filter = ('action', 'object_type')
