from rest_framework.generics import ListAPIView
from rest_framework.permissions import IsAuthenticated

from apps.users.permissions import IsAdminRole

from .models import AuditLogEntry
from .serializers import AuditLogEntrySerializer


class AdminAuditLogListView(ListAPIView):
    serializer_class = AuditLogEntrySerializer
    permission_classes = [IsAuthenticated, IsAdminRole]
    filterset_fields = ["action", "actor", "target_ref"]

    def get_queryset(self):
        return AuditLogEntry.objects.select_related("actor")
