"""
Admin inbox: sending, threading, read state and conversation grouping.
"""
from unittest import mock

import pytest

from core.models import Message, User
from core.services import conversations, messaging

pytestmark = pytest.mark.django_db


@pytest.fixture
def admins(make_user):
    return [make_user(User.ROLE_ADMIN, first_name=name) for name in ('Ada', 'Bo', 'Cy')]


def send(sender, recipients, **extra):
    data = {'subject': 'Hello', 'content': 'Body', 'recipients': [u.id for u in recipients]}
    data.update(extra)
    return messaging.send_message(sender, data)


def test_messaging_is_admin_only(client_for, student):
    assert client_for(student).get('/api/admin/messages').status_code == 403
    assert client_for().get('/api/admin/messages').status_code == 401


def test_send_sanitizes_and_starts_thread(client_for, admins):
    ada, bo, _ = admins
    response = client_for(ada).post('/api/admin/messages', {
        'subject': 'Welcome', 'content': '<script>alert(1)</script>Hi <b>there</b>',
        'recipients': [bo.id], 'priority': 'high',
    }, format='json')
    assert response.status_code == 201
    data = response.data['message']
    assert '<script>' not in data['content']
    assert data['threadId'] == str(data['id'])
    assert data['recipients'][0]['id'] == bo.id


def test_unknown_recipient_is_reported(client_for, admins):
    response = client_for(admins[0]).post('/api/admin/messages', {
        'subject': 'x', 'content': 'y', 'recipients': [admins[1].id, 99999],
    }, format='json')
    assert response.status_code == 400
    assert response.data['missing'] == [99999]


def test_reply_joins_parent_thread(admins):
    ada, bo, _ = admins
    root = send(ada, [bo])
    reply = send(bo, [ada], parentMessageId=root.id)
    second = send(ada, [bo], parentMessageId=reply.id)
    assert reply.thread_id == str(root.id)
    assert second.thread_id == str(root.id)


def test_reply_to_invisible_message_is_404(admins):
    ada, bo, cy = admins
    private = send(ada, [bo])
    with pytest.raises(messaging.NotFound):
        send(cy, [ada], parentMessageId=private.id)


def test_recipients_are_notified_over_channels(admins):
    ada, bo, cy = admins
    layer = mock.Mock()
    with mock.patch.object(messaging, 'get_channel_layer', return_value=layer), \
            mock.patch.object(messaging, 'async_to_sync', side_effect=lambda fn: fn):
        message = send(ada, [bo], ccRecipients=[cy.id])
    groups = sorted(call.args[0] for call in layer.group_send.call_args_list)
    assert groups == [f'messages.{bo.id}', f'messages.{cy.id}']
    payload = layer.group_send.call_args_list[0].args[1]
    assert payload['type'] == 'inbox.message'
    assert payload['messageId'] == message.id


def test_reading_marks_read_for_recipient_only(client_for, admins):
    ada, bo, _ = admins
    message = send(ada, [bo])
    client_for(ada).get(f'/api/admin/messages/{message.id}')
    message.refresh_from_db()
    assert message.is_read is False
    client_for(bo).get(f'/api/admin/messages/{message.id}')
    message.refresh_from_db()
    assert message.is_read is True
    assert message.read_at is not None


def test_non_participant_is_forbidden(client_for, admins):
    ada, bo, cy = admins
    message = send(ada, [bo])
    assert client_for(cy).get(f'/api/admin/messages/{message.id}').status_code == 403


def test_flags_and_archived_filter(client_for, admins):
    ada, bo, _ = admins
    first = send(ada, [bo], subject='first')
    second = send(ada, [bo], subject='second')
    client = client_for(bo)
    client.patch(f'/api/admin/messages/{first.id}', {'isPinned': True}, format='json')
    client.patch(f'/api/admin/messages/{second.id}', {'isArchived': True}, format='json')

    inbox = client.get('/api/admin/messages')
    assert [m['subject'] for m in inbox.data['messages']] == ['first']
    archived = client.get('/api/admin/messages', {'isArchived': 'true'})
    assert [m['subject'] for m in archived.data['messages']] == ['second']
    assert archived.data['messages'][0]['archivedAt'] is not None

    empty = client.patch(f'/api/admin/messages/{first.id}', {}, format='json')
    assert empty.status_code == 400


def test_pinned_messages_sort_first(client_for, admins):
    ada, bo, _ = admins
    pinned = send(ada, [bo], subject='old but pinned')
    send(ada, [bo], subject='newer')
    Message.objects.filter(pk=pinned.pk).update(is_pinned=True)
    subjects = [m['subject'] for m in client_for(bo).get('/api/admin/messages').data['messages']]
    assert subjects == ['old but pinned', 'newer']


def test_only_sender_deletes(client_for, admins):
    ada, bo, _ = admins
    message = send(ada, [bo])
    assert client_for(bo).delete(f'/api/admin/messages/{message.id}').status_code == 403
    assert client_for(ada).delete(f'/api/admin/messages/{message.id}').status_code == 204
    assert not Message.objects.filter(pk=message.id).exists()


def test_conversations_group_by_participants(client_for, admins):
    ada, bo, cy = admins
    send(ada, [bo], content='one')
    send(bo, [ada], content='two')
    send(ada, [bo, cy], content='group')

    convs = conversations.list_conversations(ada)
    keys = {c['id']: c for c in convs}
    pair = '-'.join(str(i) for i in sorted((ada.id, bo.id)))
    trio = '-'.join(str(i) for i in sorted((ada.id, bo.id, cy.id)))
    assert set(keys) == {pair, trio}
    assert keys[pair]['messageCount'] == 2
    assert keys[pair]['unreadCount'] == 1
    assert keys[pair]['isGroup'] is False
    assert keys[trio]['isGroup'] is True
    assert convs[0]['id'] == trio

    response = client_for(ada).get('/api/admin/conversations', {'search': 'cy'})
    assert [c['id'] for c in response.data['conversations']] == [trio]


def test_conversation_detail_marks_incoming_read(client_for, admins):
    ada, bo, _ = admins
    send(ada, [bo], content='one')
    incoming = send(bo, [ada], content='two')
    key = '-'.join(str(i) for i in sorted((ada.id, bo.id)))

    response = client_for(ada).get(f'/api/admin/conversations/{key}')
    assert [m['content'] for m in response.data['messages']] == ['one', 'two']
    incoming.refresh_from_db()
    assert incoming.is_read is True


def test_conversation_key_ignores_cc(admins):
    ada, bo, cy = admins
    message = send(ada, [bo], ccRecipients=[cy.id])
    assert conversations.conversation_key(message) == '-'.join(str(i) for i in sorted((ada.id, bo.id)))


def test_cc_only_messages_stay_out_of_conversation_list(client_for, admins):
    ada, bo, cy = admins
    send(ada, [bo], ccRecipients=[cy.id], content='cc copy')
    send(cy, [ada], content='direct')
    convs = client_for(cy).get('/api/admin/conversations').data['conversations']
    assert [c['lastMessage']['content'] for c in convs] == ['direct']
    for conv in convs:
        detail = client_for(cy).get(f"/api/admin/conversations/{conv['id']}")
        assert [m['content'] for m in detail.data['messages']] == ['direct']
    assert messaging.visible_to(cy).filter(content='cc copy').exists()


def test_foreign_conversation_key_is_empty(client_for, admins):
    ada, bo, cy = admins
    send(ada, [bo])
    key = '-'.join(str(i) for i in sorted((ada.id, bo.id)))
    assert client_for(cy).get(f'/api/admin/conversations/{key}').data['messages'] == []


def test_admin_users_excludes_self_and_students(client_for, admins, student):
    response = client_for(admins[0]).get('/api/admin/users')
    ids = [u['id'] for u in response.data['users']]
    assert admins[0].id not in ids
    assert student.id not in ids
    assert len(ids) == 2
