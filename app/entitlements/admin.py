"""
Django admin configuration for entitlements.

Used for inspection and manual remediation: proofs that could not be
resolved automatically can be re-queued from the list views.
"""

from django.contrib import admin, messages

from entitlements.models import AssociationMembership, Membership, TrainingPurchase, UserMembership
from entitlements.states import TransactionKind


class ProofOfPaymentActionsMixin:
    """Admin action re-queuing proof resolution for the selected rows."""

    transaction_kind: TransactionKind

    @admin.action(description="Resolve proof of payment again")
    def resolve_proof_again(self, request, queryset):
        # Import here to avoid circular imports
        from payments.tasks import resolve_proof_of_payment

        pending = queryset.filter(proof_reference__isnull=True)
        for entitlement_id in pending.values_list("pk", flat=True):
            resolve_proof_of_payment.delay(self.transaction_kind.value, str(entitlement_id))
        self.message_user(
            request,
            f"{pending.count()} proof resolution(s) queued",
            level=messages.INFO,
        )


class UserMembershipInline(admin.TabularInline):
    model = UserMembership
    extra = 0
    raw_id_fields = ["user"]


class AssociationMembershipInline(admin.TabularInline):
    model = AssociationMembership
    extra = 0
    raw_id_fields = ["association"]


@admin.register(Membership)
class MembershipAdmin(ProofOfPaymentActionsMixin, admin.ModelAdmin):
    transaction_kind = TransactionKind.MEMBERSHIP

    list_display = [
        "id",
        "status",
        "price",
        "state",
        "start_at",
        "end_at",
        "proof_type",
        "created_at",
    ]
    list_filter = ["state", "status", "proof_type"]
    search_fields = ["id", "stripe_session_id", "stripe_payment_intent_id", "proof_reference"]
    readonly_fields = ["id", "state", "end_at", "created_at", "updated_at"]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]
    inlines = [UserMembershipInline, AssociationMembershipInline]
    actions = ["resolve_proof_again"]

    fieldsets = (
        (None, {"fields": ("id", "status", "price", "currency")}),
        ("Period", {"fields": ("start_at", "end_at", "state", "cancelled_at")}),
        (
            "Stripe",
            {"fields": ("stripe_session_id", "stripe_payment_intent_id", "stripe_subscription_id")},
        ),
        (
            "Proof of payment",
            {"fields": ("proof_reference", "proof_url", "proof_type", "proof_resolved_at")},
        ),
        ("Timestamps", {"fields": ("created_at", "updated_at")}),
    )


@admin.register(TrainingPurchase)
class TrainingPurchaseAdmin(ProofOfPaymentActionsMixin, admin.ModelAdmin):
    transaction_kind = TransactionKind.TRAINING

    list_display = [
        "id",
        "user",
        "training_id",
        "purchase_amount",
        "hours_purchased",
        "hours_consumed",
        "proof_type",
        "purchased_at",
    ]
    list_filter = ["training_id", "payment_status", "proof_type"]
    search_fields = ["id", "user__email", "stripe_session_id", "proof_reference"]
    raw_id_fields = ["user"]
    readonly_fields = ["id", "purchased_at", "created_at", "updated_at"]
    ordering = ["-purchased_at"]
    actions = ["resolve_proof_again"]
