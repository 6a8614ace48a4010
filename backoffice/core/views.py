from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from rest_framework_simplejwt.views import TokenObtainPairView
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer
from rest_framework_simplejwt.exceptions import AuthenticationFailed
from django.shortcuts import get_object_or_404
from .models import AuditLog
from .permissions import user_has_role, get_user_roles, ADMIN, MANAGER
from .serializers import UserSerializer, AuditLogSerializer


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    def validate(self, attrs):
        data = super().validate(attrs)
        if not self.user.is_active:
            raise AuthenticationFailed('User account is disabled.')
        return data

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['username'] = user.username
        token['roles'] = get_user_roles(user)
        return token


class CustomTokenObtainPairView(TokenObtainPairView):
    serializer_class = CustomTokenObtainPairSerializer


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """Return the authenticated user with their roles"""
    return Response(UserSerializer(request.user).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_log_list(request):
    """List audit logs, optionally filtered by action (admins and managers only)"""
    if not user_has_role(request.user, [ADMIN, MANAGER]):
        return Response({'success': False, 'error': 'Insufficient permissions'}, status=status.HTTP_403_FORBIDDEN)

    logs = AuditLog.objects.select_related('user')
    action = request.query_params.get('action')
    if action:
        logs = logs.filter(action=action)
    serializer = AuditLogSerializer(logs[:200], many=True)
    return Response(serializer.data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_log_detail(request, pk):
    """Retrieve an audit log entry"""
    if not user_has_role(request.user, [ADMIN, MANAGER]):
        return Response({'success': False, 'error': 'Insufficient permissions'}, status=status.HTTP_403_FORBIDDEN)
    log = get_object_or_404(AuditLog, pk=pk)
    return Response(AuditLogSerializer(log).data)
