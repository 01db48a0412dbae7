import logging

from django.contrib.auth import get_user_model
from rest_framework import generics, status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.cores.actors import Actor

from . import services
from .permissions import IsActiveUser, IsAdminRole
from .serializers import LoginSerializer, RegisterSerializer, UserSerializer

logger = logging.getLogger(__name__)
User = get_user_model()


class RegisterView(generics.GenericAPIView):
    """Create a client or technician account."""
    serializer_class = RegisterSerializer
    permission_classes = [AllowAny]
    authentication_classes = []

    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        logger.info("Registered %s as %s", user.email, user.role)
        return Response(
            {
                "success": True,
                "message": "User registered successfully.",
                "user": UserSerializer(user).data,
            },
            status=status.HTTP_201_CREATED,
        )


class LoginView(generics.GenericAPIView):
    """
    Login using email and password.
    Returns access and refresh JWT tokens.
    """
    serializer_class = LoginSerializer
    permission_classes = [AllowAny]
    authentication_classes = []

    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return Response(
            {
                "success": True,
                "message": "Login successful.",
                "data": serializer.validated_data,
            },
            status=status.HTTP_200_OK,
        )


class MeView(generics.RetrieveAPIView):
    serializer_class = UserSerializer
    permission_classes = [IsAuthenticated]

    def get_object(self):
        return self.request.user


# -------------------------------
# Admin: accounts
# -------------------------------

class AdminUserListView(generics.ListAPIView):
    serializer_class = UserSerializer
    permission_classes = [IsAuthenticated, IsActiveUser, IsAdminRole]
    filterset_fields = ["role", "status"]
    queryset = User.objects.all().order_by("-created_at")


class SuspendUserView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        user = services.suspend_user(Actor.from_user(request.user), pk)
        return Response(UserSerializer(user).data)


class ReactivateUserView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        user = services.reactivate_user(Actor.from_user(request.user), pk)
        return Response(UserSerializer(user).data)
