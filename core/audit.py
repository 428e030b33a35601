"""
Audit trail helpers.

Every state-changing action in the dashboard goes through ``log_action`` so
the admin can see who created, cancelled or paused what.
"""
import logging

from django.contrib.contenttypes.models import ContentType

from .models import AuditLog

audit_logger = logging.getLogger('audit')


def get_client_ip(request):
    """Best-effort client IP, honouring a single reverse proxy hop"""
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')


def log_action(user, action, target=None, details=None, changes=None,
               request=None, organization=None):
    """
    Persist an AuditLog row and mirror it to the ``audit`` logger.

    Args:
        user: User performing the action (None for system actions)
        action: One of AuditLog.ACTION_* values
        target: Model instance the action applies to
        details: Free-form human readable description
        changes: Dict of changed fields
        request: HTTP request, used for IP and user agent
        organization: Organization context; read from ``target`` if omitted
    """
    if user is not None and not user.is_authenticated:
        user = None

    if organization is None and target is not None:
        organization = getattr(target, 'organization', None)

    entry = AuditLog(
        user=user,
        action=action,
        details=details,
        changes=changes or {},
        organization=organization,
    )

    if target is not None:
        entry.content_type = ContentType.objects.get_for_model(target)
        entry.object_id = target.pk
        entry.target_repr = str(target)[:255]

    if request is not None:
        entry.ip_address = get_client_ip(request)
        entry.user_agent = request.META.get('HTTP_USER_AGENT', '')

    entry.save()

    audit_logger.info(
        "%s %s %s: %s",
        user.username if user else 'system',
        action,
        entry.target_repr or '-',
        details or '',
    )
    return entry
