"""In-app notifications addressed to one user."""
from __future__ import annotations

from clinic.models import Notification, User
from clinic.services import policy
from clinic.services.audit import log_action
from clinic.services.records import fetch


def serialize_notification(n: Notification) -> dict:
    return {
        'id': n.pk,
        'recipient_id': n.recipient_id,
        'sender_id': n.sender_id,
        'title': n.title,
        'message': n.message,
        'is_read': n.is_read,
        'created_at': n.created_at.isoformat() if n.created_at else None,
    }


def list_notifications(actor, *, unread=None):
    qs = policy.visible(actor, policy.NOTIFICATION, Notification.objects.order_by('-created_at', '-id'))
    if unread is not None:
        qs = qs.filter(is_read=not unread)
    return qs


def send(actor, data: dict) -> Notification:
    recipient = fetch(User, data['recipient_id'], 'Recipient')
    policy.enforce(actor, 'create', recipient, policy.NOTIFICATION)
    n = Notification.objects.create(recipient=recipient, sender=actor,
                                    title=data['title'], message=data.get('message', ''))
    log_action(user=actor, action='notification.create', object_type='notification', object_id=n.pk,
               detail={'recipient_id': recipient.pk})
    return n


def mark_read(actor, pk) -> Notification:
    n = fetch(Notification, pk, 'Notification')
    policy.enforce(actor, 'read', n)
    if not n.is_read:
        n.is_read = True
        n.save(update_fields=['is_read'])
    return n


def mark_all_read(actor) -> int:
    qs = policy.visible(actor, policy.NOTIFICATION, Notification.objects.filter(is_read=False), 'read')
    return qs.update(is_read=True)
