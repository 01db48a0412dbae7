import logging

import stripe
from django.http import HttpResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.csrf import csrf_exempt
from rest_framework.generics import ListAPIView, RetrieveAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.cores.actors import Actor
from apps.cores.exceptions import LifecycleError, StateConflict
from apps.users.permissions import IsActiveUser

from . import gateway, services
from .models import Payment
from .selectors import visible_payments
from .serializers import (
    CreateCheckoutSessionSerializer,
    PaymentSerializer,
    ProofSerializer,
    RejectSerializer,
)

logger = logging.getLogger(__name__)

# Stripe events that mean the money arrived; PIX settles asynchronously
PAID_EVENTS = ("checkout.session.completed", "checkout.session.async_payment_succeeded")


class PaymentListView(ListAPIView):
    serializer_class = PaymentSerializer
    permission_classes = [IsAuthenticated, IsActiveUser]
    filterset_fields = ["status", "method"]

    def get_queryset(self):
        return visible_payments(self.request.user)


class PaymentDetailView(RetrieveAPIView):
    serializer_class = PaymentSerializer
    permission_classes = [IsAuthenticated, IsActiveUser]

    def get_queryset(self):
        return visible_payments(self.request.user)


class SubmitProofView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        serializer = ProofSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        payment = services.submit_proof(
            Actor.from_user(request.user), pk, **serializer.validated_data
        )
        return Response(PaymentSerializer(payment).data)


class ConfirmPaymentView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        payment = services.confirm_payment(Actor.from_user(request.user), pk)
        return Response(PaymentSerializer(payment).data)


class RejectPaymentView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        serializer = RejectSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        payment = services.reject_payment(
            Actor.from_user(request.user), pk, serializer.validated_data["reason"]
        )
        return Response(PaymentSerializer(payment).data)


class PaymentCheckoutView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        url = services.start_checkout(Actor.from_user(request.user), pk)
        return Response({"checkout_url": url})


# -------------------------------
# Stripe Checkout
# -------------------------------

class CreateCheckoutSession(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = CreateCheckoutSessionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        payment = get_object_or_404(Payment, ticket_id=serializer.validated_data["ticket_id"])
        url = services.start_checkout(Actor.from_user(request.user), payment.pk)
        return Response({"checkout_url": url})


class VerifyPaymentView(APIView):
    permission_classes = [IsAuthenticated, IsActiveUser]

    def get(self, request, session_id):
        status = services.confirm_by_gateway(session_id)
        return Response({"status": status})


@csrf_exempt
def stripe_webhook(request):
    payload = request.body
    sig_header = request.META.get("HTTP_STRIPE_SIGNATURE")

    try:
        event = gateway.construct_webhook_event(payload, sig_header)
    except (ValueError, stripe.SignatureVerificationError):
        logger.warning("Rejected Stripe webhook with a bad payload or signature")
        return HttpResponse(status=400)

    if event["type"] not in PAID_EVENTS:
        return HttpResponse(status=200)

    session = event["data"]["object"]
    if session["payment_status"] != gateway.PAID:
        return HttpResponse(status=200)

    try:
        services.confirm_by_gateway(
            session["id"], verified=True, ticket_id=gateway.ticket_id_of(session),
        )
    except StateConflict:
        # let Stripe retry
        return HttpResponse(status=409)
    except LifecycleError as e:
        logger.error("Stripe session %s could not be applied: %s", session["id"], e.detail)

    return HttpResponse(status=200)
