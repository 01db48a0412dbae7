from django.contrib import admin

from .models import User


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ("email", "role", "status", "rating", "total_ratings", "created_at")
    list_filter = ("role", "status")
    search_fields = ("email", "username")
    readonly_fields = ("role", "rating", "total_ratings")
