from rest_framework import serializers

from .models import Payment


class PaymentSerializer(serializers.ModelSerializer):
    ticket_title = serializers.CharField(source="ticket.title", read_only=True)
    client_email = serializers.EmailField(source="client.email", read_only=True)
    tech_email = serializers.EmailField(source="tech.email", read_only=True)

    class Meta:
        model = Payment
        fields = [
            "id",
            "ticket",
            "ticket_title",
            "client",
            "client_email",
            "tech",
            "tech_email",
            "method",
            "status",
            "amount_total",
            "platform_fee",
            "tech_receives",
            "proof_text",
            "proof_image_url",
            "confirmed_by",
            "confirmed_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class PaymentSummarySerializer(serializers.ModelSerializer):
    """Embedded in ticket responses."""

    class Meta:
        model = Payment
        fields = ["id", "status", "method", "amount_total", "platform_fee", "tech_receives"]
        read_only_fields = fields


class ProofSerializer(serializers.Serializer):
    proof_text = serializers.CharField(required=False, allow_blank=True, default="")
    proof_image_url = serializers.URLField(required=False, allow_blank=True, default="")


class RejectSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class CreateCheckoutSessionSerializer(serializers.Serializer):
    ticket_id = serializers.IntegerField()
