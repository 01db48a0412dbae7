from rest_framework import serializers

from .models import AuditLogEntry


class AuditLogEntrySerializer(serializers.ModelSerializer):
    class Meta:
        model = AuditLogEntry
        fields = (
            "id",
            "actor",
            "actor_label",
            "action",
            "target_ref",
            "details",
            "created_at",
        )
        read_only_fields = fields
