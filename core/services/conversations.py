"""
Group a user's messages into conversations.

A conversation is identified by its participant set: the sorted ids of the
sender and recipients of a message, joined by ``-``. Cc recipients can read
a message but do not change which conversation it belongs to, so a
message the user was only cc'd on is not part of any of their conversations.
"""
from __future__ import annotations

from typing import Dict, List, Optional

from core.models import Message, User
from core.services.messaging import is_recipient, mark_read, visible_to


def conversation_key(message: Message) -> str:
    ids = {message.sender_id} | {u.id for u in message.recipients.all()}
    return '-'.join(str(i) for i in sorted(ids))


def parse_key(key: str) -> List[int]:
    try:
        return sorted({int(part) for part in key.split('-') if part})
    except ValueError:
        return []


def _person(u: User) -> dict:
    return {'id': u.id, 'firstName': u.first_name, 'lastName': u.last_name, 'email': u.email, 'role': u.role}


def _matches(conv: dict, needle: str) -> bool:
    for p in conv['participants']:
        if needle in p['firstName'].lower() or needle in p['lastName'].lower() or needle in p['email'].lower():
            return True
    return needle in conv['lastMessage']['content'].lower()


def list_conversations(user: User, search: Optional[str] = None) -> List[dict]:
    messages = visible_to(user).order_by('-created_at')
    grouped: Dict[str, dict] = {}
    for msg in messages:
        key = conversation_key(msg)
        if user.id not in parse_key(key):
            continue
        conv = grouped.get(key)
        if conv is None:
            people = {msg.sender_id: msg.sender}
            people.update({u.id: u for u in msg.recipients.all()})
            conv = grouped[key] = {
                'id': key,
                'participants': [_person(p) for pid, p in sorted(people.items()) if pid != user.id],
                'isGroup': len(people) > 2,
                'lastMessage': {
                    'id': msg.id,
                    'subject': msg.subject,
                    'content': msg.content,
                    'preview': msg.preview,
                    'senderId': msg.sender_id,
                    'createdAt': msg.created_at.isoformat(),
                },
                'unreadCount': 0,
                'messageCount': 0,
            }
        conv['messageCount'] += 1
        if not msg.is_read and msg.sender_id != user.id:
            conv['unreadCount'] += 1

    conversations = sorted(grouped.values(), key=lambda c: c['lastMessage']['createdAt'], reverse=True)
    needle = (search or '').strip().lower()
    if needle:
        conversations = [c for c in conversations if _matches(c, needle)]
    return conversations


def conversation_messages(user: User, key: str) -> List[Message]:
    """Messages whose participant set is exactly ``key``, oldest first. Incoming ones are marked read."""
    wanted = parse_key(key)
    if user.id not in wanted:
        return []
    messages = [
        m for m in visible_to(user).order_by('created_at')
        if parse_key(conversation_key(m)) == wanted
    ]
    for m in messages:
        if m.sender_id != user.id and is_recipient(m, user):
            mark_read(m)
    return messages
