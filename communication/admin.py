from django.contrib import admin

from .models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ("id", "recipient", "kind", "priority", "status", "request", "outreach_cycle", "expires_at", "created_at")
    list_filter = ("kind", "status", "priority", "created_at")
    search_fields = ("recipient__username", "title", "body", "dispatch_reference")
    ordering = ("-created_at",)
    readonly_fields = ("sent_at", "read_at", "responded_at", "response_action", "response_message", "dispatch_reference", "created_at")
