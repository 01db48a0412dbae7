from django.db.models import Q

from apps.users.models import Role

from .models import Payment


def visible_payments(user):
    """Admins see every payment; clients and technicians see their own."""
    qs = Payment.objects.select_related("ticket", "client", "tech").order_by("-created_at")

    if user.role == Role.ADMIN:
        return qs
    return qs.filter(Q(client=user) | Q(tech=user))
