"""
URL mappings for the education platform API.

Paths carry no trailing slash (``APPEND_SLASH = False``).
"""
from django.urls import path

from .auth_views import jwt_logout_view, jwt_refresh_view, login_view, me_view, register_view
from .views import analytics, applications, catalog, content, cron, health, messaging, recommendations, squads
from .views import notifications, submissions, templates

urlpatterns = [
    path('healthz', health.healthz),

    # Auth
    path('api/auth/login', login_view, name='login_view'),
    path('api/auth/register', register_view, name='register_view'),
    path('api/auth/refresh', jwt_refresh_view, name='jwt_refresh'),
    path('api/auth/logout', jwt_logout_view, name='jwt_logout'),
    path('api/auth/me', me_view, name='me'),

    # Recommendations
    path('api/recommendations/recipients', recommendations.recipients_list, name='recipients'),
    path('api/recommendations/recipients/<int:pk>', recommendations.recipient_detail, name='recipient_detail'),
    path('api/recommendations/requests', recommendations.requests_list, name='recommendations'),
    path('api/recommendations/requests/<int:pk>', recommendations.request_detail, name='recommendation_detail'),
    path('api/recommendations/recipient/<str:token>', recommendations.recipient_portal, name='recipient_portal'),
    path('api/cron/reminders', cron.cron_reminders, name='cron_reminders'),

    # Catalog
    path('api/schools', catalog.schools_list, name='schools'),
    path('api/schools/<int:pk>', catalog.school_detail, name='school_detail'),
    path('api/programs', catalog.programs_list, name='programs'),
    path('api/programs/<int:pk>', catalog.program_detail, name='program_detail'),
    path('api/scholarships', catalog.scholarships_list, name='scholarships'),
    path('api/scholarships/<int:pk>', catalog.scholarship_detail, name='scholarship_detail'),
    path('api/user/saved-scholarships', catalog.saved_scholarships, name='saved_scholarships'),
    path('api/user/saved-scholarships/<int:pk>', catalog.saved_scholarship_detail, name='saved_scholarship_detail'),
    path('api/dashboard/stats', catalog.dashboard_stats, name='dashboard_stats'),

    # Applications
    path('api/user-interests', applications.interests_list, name='interests'),
    path('api/user-interests/<int:pk>', applications.interest_detail, name='interest_detail'),
    path('api/application-packages', applications.packages_list, name='packages'),
    path('api/application-packages/<int:pk>', applications.package_detail, name='package_detail'),
    path('api/application-packages/<int:pk>/documents', applications.package_document_status,
         name='package_document_status'),
    path('api/application-templates', templates.templates_list, name='templates'),
    path('api/application-templates/question-types', templates.question_types, name='question_types'),
    path('api/application-templates/<int:pk>', templates.template_detail, name='template_detail'),
    path('api/application-templates/<int:pk>/autosave', templates.template_autosave, name='template_autosave'),
    path('api/application-templates/<int:pk>/builder', templates.template_builder, name='template_builder'),
    path('api/application-templates/<int:pk>/publish', templates.template_publish, name='template_publish'),
    path('api/applications', submissions.applications_list, name='applications'),
    path('api/applications/<int:pk>', submissions.application_detail, name='application_detail'),
    path('api/applications/<int:pk>/submit', submissions.application_submit, name='application_submit'),
    path('api/applications/<int:pk>/status', submissions.application_status, name='application_status'),
    path('api/admin/applications', submissions.admin_applications, name='admin_applications'),

    # Notifications
    path('api/notifications', notifications.notifications_list, name='notifications'),
    path('api/notifications/<int:pk>', notifications.notification_detail, name='notification_detail'),

    # Squads
    path('api/squads', squads.squads_list, name='squads'),
    path('api/squads/<int:pk>', squads.squad_detail, name='squad_detail'),
    path('api/squads/<int:pk>/members', squads.squad_members, name='squad_members'),
    path('api/squads/<int:pk>/goals', squads.squad_goals, name='squad_goals'),
    path('api/squads/<int:pk>/progress', squads.squad_progress, name='squad_progress'),

    # Admin messaging
    path('api/admin/messages', messaging.messages_list, name='admin_messages'),
    path('api/admin/messages/<int:pk>', messaging.message_detail, name='admin_message_detail'),
    path('api/admin/conversations', messaging.conversations_list, name='admin_conversations'),
    path('api/admin/conversations/<str:key>', messaging.conversation_detail, name='admin_conversation_detail'),
    path('api/admin/users', messaging.admin_users, name='admin_users'),

    # Content
    path('api/content', content.content_list, name='content'),
    path('api/content/<int:pk>/versions', content.content_versions, name='content_versions'),
    path('api/content/<str:key>', content.content_detail, name='content_detail'),

    # Analytics
    path('api/analytics/batch', analytics.analytics_batch, name='analytics_batch'),
    path('api/analytics/pageview', analytics.analytics_pageview, name='analytics_pageview'),
    path('api/analytics/session', analytics.analytics_session, name='analytics_session'),
    path('api/admin/analytics', analytics.admin_analytics, name='admin_analytics'),
    path('api/admin/analytics/realtime', analytics.admin_analytics_realtime, name='admin_analytics_realtime'),
    path('api/admin/active-users', analytics.admin_active_users, name='admin_active_users'),
    path('api/admin/dashboard', analytics.admin_dashboard, name='admin_dashboard'),
]
