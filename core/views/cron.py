"""
Scheduler hooks. Called by an external cron with ``Authorization: Bearer <CRON_SECRET>``.
"""
import logging

from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.response import Response
from rest_framework_simplejwt.authentication import JWTAuthentication

from core.authentication import CronSecretAuthentication, TokenAuthentication
from core.permissions import IsCronCaller
from core.services.reminders import process_reminders

logger = logging.getLogger(__name__)


@api_view(['GET', 'POST'])
@authentication_classes([CronSecretAuthentication, TokenAuthentication, JWTAuthentication])
@permission_classes([IsCronCaller])
def cron_reminders(request):
    result = process_reminders()
    logger.info("cron reminders: processed=%s sent=%s errors=%s overdue=%s",
                result['processed'], result['sent'], result['errors'], result['overdue'])
    return Response({'ok': True, **result})
