"""
Outgoing email for recommendation requests.

Messages are sent through Django's mail framework (``EMAIL_BACKEND``), with
a plain-text body and an HTML alternative. Every ``send_*`` helper returns
``True`` on success and ``False`` after logging the failure, so callers can
decide whether a delivery problem matters to them.
"""
from __future__ import annotations

import logging
from typing import Optional

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.utils.html import escape, linebreaks

from core.models import RecommendationLetter, RecommendationRequest

logger = logging.getLogger(__name__)


def send_email(to_email: str, subject: str, text_content: str, html_content: Optional[str] = None) -> bool:
    if not to_email:
        logger.warning("[Email] No recipient address, skipping '%s'", subject)
        return False
    msg = EmailMultiAlternatives(subject, text_content, settings.DEFAULT_FROM_EMAIL, [to_email])
    msg.attach_alternative(html_content or linebreaks(escape(text_content)), "text/html")
    try:
        msg.send(fail_silently=False)
    except Exception:
        logger.exception("[Email] Failed to send '%s' to %s", subject, to_email)
        return False
    logger.info("[Email] Sent '%s' to %s", subject, to_email)
    return True


def _student_name(req: RecommendationRequest) -> str:
    return req.student.display_name()


def send_recommendation_request(req: RecommendationRequest) -> bool:
    recipient = req.recipient
    lines = [
        f"Dear {recipient.name},",
        "",
        f"{_student_name(req)} has asked you for a letter of recommendation: {req.title}.",
        "",
        req.description,
        "",
        f"How they know you: {req.relationship_context}",
        f"Deadline: {req.deadline:%B %d, %Y}",
    ]
    if req.request_type == 'school_direct' and req.institution_name:
        lines.append(f"Institution: {req.institution_name}")
        if req.school_instructions:
            lines.append(f"Submission instructions: {req.school_instructions}")
    if req.include_draft and req.draft_content:
        lines += ["", "The student has included a draft you may use as a starting point."]
    lines += [
        "",
        "You can read the full request and submit your letter here:",
        req.portal_url,
        "",
        f"This link stays valid until {settings.RECOMMENDATION_TOKEN_TTL_DAYS} days after the deadline.",
    ]
    subject = f"Recommendation letter request from {_student_name(req)}"
    return send_email(recipient.primary_email, subject, "\n".join(lines))


def send_reminder(req: RecommendationRequest, days_until_deadline: int, urgency: str, message: str) -> bool:
    prefix = {'critical': 'URGENT', 'high': 'Important', 'medium': 'Reminder', 'low': 'Reminder'}[urgency]
    lines = [
        f"Dear {req.recipient.name},",
        "",
        message,
        "",
        f"Request: {req.title} (for {_student_name(req)})",
        f"Days remaining: {max(days_until_deadline, 0)}",
        "",
        f"Submit your letter: {req.portal_url}",
    ]
    subject = f"{prefix}: recommendation for {_student_name(req)} due {req.deadline:%b %d}"
    return send_email(req.recipient.primary_email, subject, "\n".join(lines))


def send_letter_received(letter: RecommendationLetter) -> bool:
    req = letter.request
    lines = [
        f"Hi {_student_name(req)},",
        "",
        f"{letter.recipient.name} has submitted their recommendation letter for \"{req.title}\".",
        f"Submitted at: {letter.submitted_at:%B %d, %Y %H:%M}",
    ]
    return send_email(req.student.email, "Your recommendation letter has arrived", "\n".join(lines))
