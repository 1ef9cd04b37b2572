"""
Payment admin configuration.

WebhookEvent rows are the audit trail of what Stripe delivered; they are
read-only apart from a manual re-reconciliation action.
"""

from django.contrib import admin, messages

from core.exceptions import BaseApplicationError
from payments.models import WebhookEvent

__all__ = [
    "WebhookEventAdmin",
]


@admin.register(WebhookEvent)
class WebhookEventAdmin(admin.ModelAdmin):
    """
    Admin configuration for WebhookEvent.

    Failed checkout events can be reconciled again from the list view once
    the cause is fixed (missing user, Stripe outage).
    """

    list_display = [
        "stripe_event_id",
        "event_type",
        "status",
        "retry_count",
        "processed_at",
        "created_at",
    ]
    list_filter = ["status", "event_type", "created_at"]
    search_fields = ["id", "stripe_event_id", "event_type", "error_message"]
    readonly_fields = [
        "id",
        "created_at",
        "updated_at",
        "stripe_event_id",
        "event_type",
        "payload",
        "status",
        "processed_at",
        "retry_count",
        "error_message",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]
    actions = ["reconcile_again"]

    fieldsets = (
        (None, {"fields": ("id", "stripe_event_id", "event_type", "status")}),
        ("Processing", {"fields": ("processed_at", "retry_count", "error_message")}),
        ("Payload", {"fields": ("payload",), "classes": ("collapse",)}),
        ("Timestamps", {"fields": ("created_at", "updated_at")}),
    )

    @admin.action(description="Reconcile the checkout session again")
    def reconcile_again(self, request, queryset):
        # Import here to avoid circular imports
        from payments.services import ReconciliationService

        service = ReconciliationService()
        for event in queryset.filter(event_type__startswith="checkout.session."):
            session_id = event.get_object_id()
            try:
                result = service.reconcile_session(session_id)
            except BaseApplicationError as e:
                event.mark_failed(f"{type(e).__name__}: {e}")
                self.message_user(request, f"{session_id}: {e}", level=messages.ERROR)
                continue

            if result.success:
                event.mark_processed()
                self.message_user(request, f"{session_id}: reconciled")
            else:
                self.message_user(request, f"{session_id}: {result.error}", level=messages.WARNING)

    def has_add_permission(self, request) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        """Webhook events are the audit trail."""
        return False
