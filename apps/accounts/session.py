"""Console identity held in a server-side session.

The logged-in user is kept as one JSON record under a single session key,
loaded when a request starts and cleared on logout.
"""
import logging

from django.conf import settings
from django.contrib.auth import get_user_model
from django.utils.crypto import constant_time_compare
from rest_framework.exceptions import AuthenticationFailed

from apps.common.permissions import can_access, has_permission

logger = logging.getLogger(__name__)

SESSION_USER_KEY = "fazztrack_user"
INVALID_CREDENTIALS = "Invalid email or password"


def serialize_identity(user):
    return {
        "id": user.pk,
        "name": user.display_name,
        "email": user.email,
        "phone": user.phone,
        "department": str(user.department),
        "role": str(user.role),
        "is_active": user.is_active,
        "created_at": user.date_joined.isoformat(),
        "updated_at": user.updated_at.isoformat() if user.updated_at else None,
    }


class IdentitySession:
    def __init__(self, store):
        self._store = store
        self.user = None

    @property
    def is_authenticated(self):
        return self.user is not None

    def init(self):
        blob = self._store.get(SESSION_USER_KEY)
        if blob is None:
            self.user = None
            return None

        user_id = blob.get("id") if isinstance(blob, dict) else None
        user = None
        if user_id is not None:
            user = get_user_model().objects.filter(pk=user_id, is_active=True).first()
        if user is None:
            logger.info("Dropping stale console identity from session")
            self._store.pop(SESSION_USER_KEY, None)
        self.user = user
        return user

    def authenticate(self, email, password):
        email = (email or "").strip().lower()
        allowed = email in settings.CONSOLE_LOGIN_ALLOWLIST
        if not allowed or not constant_time_compare(password or "", settings.CONSOLE_SHARED_PASSWORD):
            logger.warning("Console login rejected for %s", email or "<blank>")
            raise AuthenticationFailed(INVALID_CREDENTIALS)

        user = get_user_model().objects.filter(email__iexact=email, is_active=True).first()
        if user is None:
            logger.warning("Console login for %s has no active user", email)
            raise AuthenticationFailed(INVALID_CREDENTIALS)

        self._store[SESSION_USER_KEY] = serialize_identity(user)
        self.user = user
        logger.info("Console login for %s (%s/%s)", email, user.department, user.role)
        return user

    def clear(self):
        self._store.pop(SESSION_USER_KEY, None)
        self.user = None

    def has_permission(self, permission):
        return has_permission(self.user, permission)

    def can_access(self, departments, roles=None):
        return can_access(self.user, departments, roles)
