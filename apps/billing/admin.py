from django.contrib import admin

from .models import Payment


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ("id", "ticket", "client", "tech", "status", "method", "amount_total", "created_at")
    list_filter = ("status", "method")
    search_fields = ("ticket__title", "client__email", "tech__email", "checkout_session_id")
    readonly_fields = ("amount_total", "platform_fee", "tech_receives", "confirmed_by", "confirmed_at")
