from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import TicketViewSet

ticket_router = DefaultRouter()
ticket_router.register("tickets", TicketViewSet, basename="tickets")

urlpatterns = [
    path("", include(ticket_router.urls)),
]
