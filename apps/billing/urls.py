from django.urls import path

from .views import (
    ConfirmPaymentView,
    CreateCheckoutSession,
    PaymentCheckoutView,
    PaymentDetailView,
    PaymentListView,
    RejectPaymentView,
    SubmitProofView,
    VerifyPaymentView,
    stripe_webhook,
)

urlpatterns = [
    path("payments/", PaymentListView.as_view(), name="payment-list"),
    path("payments/<int:pk>/", PaymentDetailView.as_view(), name="payment-detail"),
    path("payments/<int:pk>/proof/", SubmitProofView.as_view(), name="payment-proof"),
    path("payments/<int:pk>/confirm/", ConfirmPaymentView.as_view(), name="payment-confirm"),
    path("payments/<int:pk>/reject/", RejectPaymentView.as_view(), name="payment-reject"),
    path("payments/<int:pk>/checkout/", PaymentCheckoutView.as_view(), name="payment-checkout"),

    # Stripe
    path("create-checkout-session/", CreateCheckoutSession.as_view(), name="create-checkout-session"),
    path("verify-payment/<str:session_id>/", VerifyPaymentView.as_view(), name="verify-payment"),
    path("stripe-webhook/", stripe_webhook, name="stripe-webhook"),
]
