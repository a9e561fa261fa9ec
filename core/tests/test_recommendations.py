"""
Recommendation letter workflow: recipients, requests and the recipient portal.

The recipient portal is reached without logging in, through the secure
token that is emailed to the recipient.
"""
from datetime import timedelta
from smtplib import SMTPException
from unittest import mock

from django.core import mail
from django.test import override_settings
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient, APITestCase

from core.models import AuditEvent, Recipient, RecommendationLetter, RecommendationRequest, User


class RecommendationAPITests(APITestCase):
    def setUp(self) -> None:
        self.student = User.objects.create_user(
            username='stu', email='stu@example.com', password='Str0ng-pass-42',
            first_name='Stu', last_name='Dent', role='student',
        )
        self.other = User.objects.create_user(username='other', password='Str0ng-pass-42', role='student')
        self.recipient = Recipient.objects.create(
            created_by=self.student, emails=['Prof@Uni.edu'], name='Prof. Ada',
            title='Professor', institution='University',
        )

    def authenticate(self, user: User) -> APIClient:
        client = APIClient()
        client.force_authenticate(user=user)
        return client

    def request_payload(self, **extra) -> dict:
        payload = {
            'recipientId': self.recipient.id,
            'title': 'MSc application',
            'description': 'Letter for my master application',
            'deadline': (timezone.now() + timedelta(days=20)).isoformat(),
            'relationshipContext': 'Thesis supervisor',
        }
        payload.update(extra)
        return payload

    def test_recipient_emails_are_normalised(self):
        self.assertEqual(self.recipient.emails, ['prof@uni.edu'])
        self.assertEqual(self.recipient.primary_email, 'prof@uni.edu')

    def test_duplicate_recipient_email_conflicts(self):
        client = self.authenticate(self.student)
        response = client.post('/api/recommendations/recipients', {
            'emails': ['PROF@uni.edu', 'ada@home.org'], 'name': 'Ada', 'title': 'Dr', 'institution': 'Uni',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['recipientId'], self.recipient.id)

    def test_recipients_are_scoped_to_owner(self):
        response = self.authenticate(self.other).get(f'/api/recommendations/recipients/{self.recipient.id}')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        listing = self.authenticate(self.other).get('/api/recommendations/recipients')
        self.assertEqual(listing.data['recipients'], [])

    def test_create_request_emails_recipient_and_schedules_reminder(self):
        client = self.authenticate(self.student)
        response = client.post('/api/recommendations/requests', self.request_payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['emailSent'])
        self.assertEqual(response.data['request']['status'], 'sent')

        req = RecommendationRequest.objects.get(pk=response.data['request']['id'])
        self.assertEqual(req.reminder_intervals, [7, 3, 1])
        self.assertEqual(req.next_reminder_date, req.deadline - timedelta(days=7))
        self.assertEqual(req.token_expires_at, req.deadline + timedelta(days=30))
        self.assertEqual(len(mail.outbox), 1)
        self.assertIn(req.secure_token, mail.outbox[0].body)
        self.assertEqual(mail.outbox[0].to, ['prof@uni.edu'])
        self.assertTrue(AuditEvent.objects.filter(action='recommendation_create', object_id=req.id).exists())

    def test_email_failure_leaves_request_pending(self):
        client = self.authenticate(self.student)
        with mock.patch('core.services.email.EmailMultiAlternatives.send', side_effect=SMTPException('down')):
            response = client.post('/api/recommendations/requests', self.request_payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertFalse(response.data['emailSent'])
        self.assertEqual(response.data['request']['status'], 'pending')
        req = RecommendationRequest.objects.get(pk=response.data['request']['id'])
        self.assertEqual(req.status, 'pending')
        self.assertEqual(len(mail.outbox), 0)

    @override_settings(RECOMMENDATION_TOKEN_TTL_DAYS=45)
    def test_request_email_states_configured_link_lifetime(self):
        client = self.authenticate(self.student)
        response = client.post('/api/recommendations/requests', self.request_payload(), format='json')
        req = RecommendationRequest.objects.get(pk=response.data['request']['id'])
        self.assertEqual(req.token_expires_at, req.deadline + timedelta(days=45))
        self.assertIn('valid until 45 days after the deadline', mail.outbox[0].body)

    def test_deadline_must_be_in_future(self):
        client = self.authenticate(self.student)
        payload = self.request_payload(deadline=(timezone.now() - timedelta(days=1)).isoformat())
        response = client.post('/api/recommendations/requests', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error']['code'], 'validation_error')

    def test_school_direct_requires_institution(self):
        client = self.authenticate(self.student)
        response = client.post(
            '/api/recommendations/requests', self.request_payload(requestType='school_direct'), format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_other_students_cannot_see_request(self):
        req = RecommendationRequest.objects.create(
            student=self.student, recipient=self.recipient, title='t', description='d',
            deadline=timezone.now() + timedelta(days=10), relationship_context='r',
        )
        response = self.authenticate(self.other).get(f'/api/recommendations/requests/{req.id}')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_only_pending_requests_can_be_edited(self):
        req = RecommendationRequest.objects.create(
            student=self.student, recipient=self.recipient, title='t', description='d',
            deadline=timezone.now() + timedelta(days=10), relationship_context='r', status='sent',
        )
        response = self.authenticate(self.student).put(
            f'/api/recommendations/requests/{req.id}', {'title': 'new'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_recipient_with_open_request_cannot_be_deleted(self):
        RecommendationRequest.objects.create(
            student=self.student, recipient=self.recipient, title='t', description='d',
            deadline=timezone.now() + timedelta(days=10), relationship_context='r',
        )
        response = self.authenticate(self.student).delete(f'/api/recommendations/recipients/{self.recipient.id}')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(Recipient.objects.filter(pk=self.recipient.id).exists())


class RecipientPortalTests(APITestCase):
    def setUp(self) -> None:
        self.student = User.objects.create_user(
            username='stu', email='stu@example.com', password='Str0ng-pass-42', first_name='Stu',
        )
        self.recipient = Recipient.objects.create(
            created_by=self.student, emails=['prof@uni.edu'], name='Prof. Ada',
            title='Professor', institution='University',
        )
        self.req = RecommendationRequest.objects.create(
            student=self.student, recipient=self.recipient, title='PhD application', description='d',
            deadline=timezone.now() + timedelta(days=10), relationship_context='r',
            include_draft=False, draft_content='secret draft', status='sent',
        )
        self.url = f'/api/recommendations/recipient/{self.req.secure_token}'

    def test_portal_shows_request_without_login(self):
        response = APIClient().get(self.url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['request']['title'], 'PhD application')
        self.assertEqual(response.data['request']['student']['name'], 'Stu')
        self.assertIsNone(response.data['request']['draftContent'])
        self.assertIsNone(response.data['letter'])

    def test_unknown_token_is_not_found(self):
        response = APIClient().get('/api/recommendations/recipient/' + 'a' * 64)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_expired_token_is_not_found(self):
        RecommendationRequest.objects.filter(pk=self.req.pk).update(
            token_expires_at=timezone.now() - timedelta(minutes=1)
        )
        response = APIClient().get(self.url)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_cancelled_request_is_rejected(self):
        self.req.status = 'cancelled'
        self.req.save()
        response = APIClient().get(self.url)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_submit_letter_marks_request_received_and_versions(self):
        client = APIClient()
        first = client.post(self.url, {'content': 'Strong candidate.'}, format='json')
        self.assertEqual(first.status_code, status.HTTP_201_CREATED)
        self.assertEqual(first.data['letter']['version'], 1)
        second = client.post(self.url, {'fileUrl': 'https://files.example.org/letter.pdf'}, format='json')
        self.assertEqual(second.data['letter']['version'], 2)
        self.assertEqual(second.data['letter']['previousVersionId'], first.data['letter']['id'])

        self.req.refresh_from_db()
        self.assertEqual(self.req.status, 'received')
        self.assertIsNotNone(self.req.received_at)
        self.assertEqual(RecommendationLetter.objects.filter(request=self.req).count(), 2)
        self.assertEqual(mail.outbox[-1].to, ['stu@example.com'])

    def test_letter_needs_content_or_file(self):
        response = APIClient().post(self.url, {'content': '   '}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
