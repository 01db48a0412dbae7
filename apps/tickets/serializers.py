from rest_framework import serializers

from apps.billing.serializers import PaymentSummarySerializer

from .constants import MAX_TITLE_LENGTH
from .models import Message, Ticket
from .state_machine import DisputeOutcome


class TicketSerializer(serializers.ModelSerializer):
    client_email = serializers.EmailField(source="client.email", read_only=True)
    tech_email = serializers.EmailField(source="tech.email", read_only=True, default=None)
    rating = serializers.SerializerMethodField()
    payment = serializers.SerializerMethodField()

    class Meta:
        model = Ticket
        fields = [
            "id",
            "client",
            "client_email",
            "tech",
            "tech_email",
            "status",
            "title",
            "category",
            "description",
            "image_url",
            "platform_fee_pct",
            "budget_amount",
            "budget_type",
            "dispute_reason",
            "rating",
            "payment",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_rating(self, obj):
        return obj.rating

    def get_payment(self, obj):
        payment = getattr(obj, "payment", None)
        if payment is None:
            return None
        return PaymentSummarySerializer(payment).data


class TicketCreateSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=MAX_TITLE_LENGTH)
    description = serializers.CharField()
    category = serializers.CharField(required=False, allow_blank=True, default="")
    image_url = serializers.URLField(required=False, allow_blank=True, default="")


class TicketEditSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=MAX_TITLE_LENGTH, required=False)
    description = serializers.CharField(required=False)


class AssignSerializer(serializers.Serializer):
    tech_id = serializers.IntegerField()


class BudgetSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)


class DisputeSerializer(serializers.Serializer):
    reason = serializers.CharField()


class ResolveDisputeSerializer(serializers.Serializer):
    outcome = serializers.ChoiceField(choices=DisputeOutcome.choices)


class RateSerializer(serializers.Serializer):
    score = serializers.IntegerField()
    comment = serializers.CharField(required=False, allow_blank=True, default="")


class SuggestCategorySerializer(serializers.Serializer):
    description = serializers.CharField()


class MessageSerializer(serializers.ModelSerializer):
    sender_email = serializers.EmailField(source="sender.email", read_only=True)

    class Meta:
        model = Message
        fields = ["id", "ticket", "sender", "sender_email", "sender_role", "text", "created_at"]
        read_only_fields = fields


class MessageCreateSerializer(serializers.Serializer):
    text = serializers.CharField()
