from django.db.models import Q

from apps.users.models import Role

from .constants import TicketStatus
from .models import Ticket


def visible_tickets(user):
    """
    Admins see everything, clients their own tickets, technicians their
    assignments plus the open pool they can accept from.
    """
    qs = Ticket.objects.select_related("client", "tech", "payment")

    if user.role == Role.ADMIN:
        return qs
    if user.role == Role.CLIENT:
        return qs.filter(client=user)
    if user.role == Role.TECH:
        return qs.filter(Q(tech=user) | Q(status=TicketStatus.OPEN, tech__isnull=True))
    return qs.none()
