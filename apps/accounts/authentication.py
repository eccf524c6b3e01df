from rest_framework.authentication import SessionAuthentication

from apps.accounts.session import IdentitySession


class ConsoleSessionAuthentication(SessionAuthentication):
    def authenticate(self, request):
        session = getattr(request._request, "session", None)
        if session is None:
            return None

        user = IdentitySession(session).init()
        if user is None:
            return None

        self.enforce_csrf(request)
        return (user, None)
