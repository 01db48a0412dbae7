import logging

from django.shortcuts import get_object_or_404
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from apps.cores.actors import Actor
from apps.users.permissions import IsActiveUser

from .selectors import visible_tickets
from .serializers import (
    AssignSerializer,
    BudgetSerializer,
    DisputeSerializer,
    MessageCreateSerializer,
    MessageSerializer,
    RateSerializer,
    ResolveDisputeSerializer,
    SuggestCategorySerializer,
    TicketCreateSerializer,
    TicketEditSerializer,
    TicketSerializer,
)
from .services import categorizer, chat, disputes, lifecycle

logger = logging.getLogger(__name__)


class TicketViewSet(mixins.ListModelMixin,
                    mixins.RetrieveModelMixin,
                    viewsets.GenericViewSet):
    """
    Tickets visible to the caller, plus one POST action per lifecycle
    transition. Writes go through apps.tickets.services.
    """
    serializer_class = TicketSerializer
    permission_classes = [IsAuthenticated, IsActiveUser]
    filterset_fields = ["status", "category"]

    def get_queryset(self):
        return visible_tickets(self.request.user)

    def actor(self):
        return Actor.from_user(self.request.user)

    def _payload(self, serializer_class):
        serializer = serializer_class(data=self.request.data)
        serializer.is_valid(raise_exception=True)
        return serializer.validated_data

    def _respond(self, ticket, code=status.HTTP_200_OK):
        ticket = get_object_or_404(self.get_queryset(), pk=ticket.pk)
        return Response(TicketSerializer(ticket).data, status=code)

    def create(self, request):
        data = self._payload(TicketCreateSerializer)
        ticket = lifecycle.create_ticket(self.actor(), **data)
        return self._respond(ticket, status.HTTP_201_CREATED)

    def partial_update(self, request, pk=None):
        data = self._payload(TicketEditSerializer)
        ticket = lifecycle.edit_ticket(self.actor(), pk, **data)
        return self._respond(ticket)

    def destroy(self, request, pk=None):
        lifecycle.delete_ticket(self.actor(), pk)
        return Response({"detail": "Ticket deleted successfully."}, status=status.HTTP_204_NO_CONTENT)

    # -------------------------------
    # Transitions
    # -------------------------------

    @action(detail=True, methods=["post"])
    def assign(self, request, pk=None):
        data = self._payload(AssignSerializer)
        return self._respond(lifecycle.assign_ticket(self.actor(), pk, data["tech_id"]))

    @action(detail=True, methods=["post"])
    def accept(self, request, pk=None):
        return self._respond(lifecycle.accept_ticket(self.actor(), pk))

    @action(detail=True, methods=["post"])
    def budget(self, request, pk=None):
        data = self._payload(BudgetSerializer)
        return self._respond(lifecycle.set_budget(self.actor(), pk, data["amount"]))

    @action(detail=True, methods=["post"])
    def start(self, request, pk=None):
        return self._respond(lifecycle.start_work(self.actor(), pk))

    @action(detail=True, methods=["post"])
    def finish(self, request, pk=None):
        return self._respond(lifecycle.finish_work(self.actor(), pk))

    @action(detail=True, methods=["post"])
    def dispute(self, request, pk=None):
        data = self._payload(DisputeSerializer)
        return self._respond(disputes.open_dispute(self.actor(), pk, data["reason"]))

    @action(detail=True, methods=["post"], url_path="resolve-dispute")
    def resolve_dispute(self, request, pk=None):
        data = self._payload(ResolveDisputeSerializer)
        return self._respond(disputes.resolve_dispute(self.actor(), pk, data["outcome"]))

    @action(detail=True, methods=["post"])
    def rate(self, request, pk=None):
        data = self._payload(RateSerializer)
        return self._respond(lifecycle.rate_ticket(self.actor(), pk, data["score"], data["comment"]))

    # -------------------------------
    # Chat
    # -------------------------------

    @action(detail=True, methods=["get", "post"])
    def messages(self, request, pk=None):
        if request.method == "GET":
            messages = chat.list_messages(self.actor(), pk)
            return Response(MessageSerializer(messages, many=True).data)

        data = self._payload(MessageCreateSerializer)
        message = chat.post_message(self.actor(), pk, data["text"])
        return Response(MessageSerializer(message).data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=["post"], url_path="suggest-category")
    def suggest_category(self, request):
        data = self._payload(SuggestCategorySerializer)
        return Response({"category": categorizer.suggest_category(data["description"])})
