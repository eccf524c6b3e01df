import logging

from django.contrib.auth import get_user_model
from django.db.models import Q
from rest_framework import status, viewsets
from rest_framework.exceptions import AuthenticationFailed, ValidationError
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.tokens import RefreshToken

from apps.accounts.serializers import IdentitySerializer, LoginSerializer, UserWriteSerializer
from apps.accounts.session import IdentitySession
from apps.audit.services import record_audit
from apps.common.exceptions import error_response
from apps.common.permissions import RolePermission

logger = logging.getLogger(__name__)


class LoginView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        session = IdentitySession(request.session)
        try:
            user = session.authenticate(serializer.validated_data["email"], serializer.validated_data["password"])
        except AuthenticationFailed as exc:
            return error_response("authentication_failed", exc.detail, status.HTTP_401_UNAUTHORIZED)
        request.session.cycle_key()

        record_audit(actor=user, action="auth.login", entity_type="user", entity_id=user.id)
        refresh = RefreshToken.for_user(user)
        data = IdentitySerializer(user).data
        data["access"] = str(refresh.access_token)
        data["refresh"] = str(refresh)
        return Response(data, status=status.HTTP_200_OK)


class LogoutView(APIView):
    permission_classes = [AllowAny]

    def post(self, request):
        user = request.user if request.user and request.user.is_authenticated else None
        IdentitySession(request.session).clear()
        if user:
            record_audit(actor=user, action="auth.logout", entity_type="user", entity_id=user.id)
        return Response(status=status.HTTP_204_NO_CONTENT)


class MeView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(IdentitySerializer(request.user).data)


class UserViewSet(viewsets.ModelViewSet):
    serializer_class = UserWriteSerializer
    permission_classes = [RolePermission]
    http_method_names = ["get", "post", "patch", "head", "options"]
    capability_map = {
        "list": ["manage_departments"],
        "retrieve": ["manage_departments"],
        "create": ["manage_departments"],
        "partial_update": ["manage_departments"],
    }

    def get_queryset(self):
        queryset = get_user_model().objects.order_by("department", "username")
        params = self.request.query_params
        query = params.get("q")
        if query:
            query = query.strip()
            queryset = queryset.filter(
                Q(username__icontains=query)
                | Q(email__icontains=query)
                | Q(first_name__icontains=query)
                | Q(last_name__icontains=query)
            )
        department = params.get("department")
        if department and department != "all":
            queryset = queryset.filter(department=department)
        role = params.get("role")
        if role and role != "all":
            queryset = queryset.filter(role=role)
        is_active = params.get("is_active")
        if is_active is not None:
            flag = is_active.strip().lower()
            if flag in {"1", "true", "yes"}:
                queryset = queryset.filter(is_active=True)
            elif flag in {"0", "false", "no"}:
                queryset = queryset.filter(is_active=False)
        return queryset

    def perform_create(self, serializer):
        user = serializer.save()
        record_audit(
            actor=self.request.user,
            action="accounts.user.create",
            entity_type="user",
            entity_id=user.id,
            summary=f"User {user.username} added to {user.get_department_display()}",
            payload={"department": user.department, "role": user.role},
        )
        logger.info("user %s created in %s/%s", user.username, user.department, user.role)

    def perform_update(self, serializer):
        if serializer.instance.pk == self.request.user.pk and serializer.validated_data.get("is_active") is False:
            raise ValidationError({"is_active": "You cannot deactivate your own account."})
        user = serializer.save()
        fields = sorted(key for key in serializer.validated_data.keys() if key != "password")
        record_audit(
            actor=self.request.user,
            action="accounts.user.update",
            entity_type="user",
            entity_id=user.id,
            summary=f"User {user.username} updated",
            payload={"fields": fields, "password_changed": "password" in serializer.validated_data},
        )
        logger.info("user %s updated (%s)", user.username, ", ".join(fields))
