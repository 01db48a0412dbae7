from django.contrib import admin

from .models import Message, Ticket


@admin.register(Ticket)
class TicketAdmin(admin.ModelAdmin):
    list_display = ("id", "title", "client", "tech", "status", "category", "budget_amount", "created_at")
    list_filter = ("status", "category")
    search_fields = ("title", "client__email", "tech__email")
    # status only moves through the lifecycle services
    readonly_fields = ("status", "tech", "platform_fee_pct", "budget_amount", "rating_score", "rated_at")


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    list_display = ("id", "ticket", "sender", "sender_role", "created_at")
    search_fields = ("text",)
