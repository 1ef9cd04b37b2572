import uuid

import django.db.models.deletion
import django.utils.timezone
import django_fsm
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("accounts", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Membership",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier (UUID v4)",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "proof_reference",
                    models.CharField(
                        blank=True,
                        db_index=True,
                        help_text="Stripe invoice id (in_xxx) or payment intent id for receipts",
                        max_length=255,
                        null=True,
                    ),
                ),
                (
                    "proof_url",
                    models.URLField(
                        blank=True,
                        help_text="Hosted invoice page, invoice PDF or charge receipt URL",
                        max_length=1000,
                    ),
                ),
                (
                    "proof_type",
                    models.CharField(
                        blank=True,
                        choices=[("invoice", "Invoice"), ("receipt", "Receipt")],
                        help_text="Whether the proof is an invoice or a lower-fidelity receipt",
                        max_length=20,
                    ),
                ),
                (
                    "proof_resolved_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the proof was attached",
                        null=True,
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "price",
                    models.DecimalField(
                        decimal_places=2,
                        help_text="Amount paid in euros",
                        max_digits=10,
                    ),
                ),
                (
                    "currency",
                    models.CharField(
                        default="eur",
                        help_text="ISO 4217 currency code (lowercase)",
                        max_length=3,
                    ),
                ),
                (
                    "status",
                    models.PositiveSmallIntegerField(
                        choices=[
                            (1, "Connected"),
                            (2, "Member"),
                            (3, "Professional member"),
                            (4, "Association member"),
                        ],
                        help_text="Member status tier granted by this membership",
                    ),
                ),
                (
                    "start_at",
                    models.DateTimeField(help_text="Start of the membership year"),
                ),
                (
                    "end_at",
                    models.DateTimeField(
                        db_index=True,
                        help_text="Exactly start_at + 365 days",
                    ),
                ),
                (
                    "state",
                    django_fsm.FSMField(
                        choices=[
                            ("active", "Active"),
                            ("renewal_cancelled", "Renewal cancelled"),
                        ],
                        db_index=True,
                        default="active",
                        help_text="Stored state (managed by FSM); expiry is computed",
                        max_length=50,
                    ),
                ),
                (
                    "cancelled_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When renewal was cancelled",
                        null=True,
                    ),
                ),
                (
                    "stripe_session_id",
                    models.CharField(
                        help_text="Checkout session that paid for this membership",
                        max_length=255,
                        unique=True,
                    ),
                ),
                (
                    "stripe_payment_intent_id",
                    models.CharField(
                        blank=True,
                        help_text="PaymentIntent of the checkout session (pi_xxx)",
                        max_length=255,
                    ),
                ),
                (
                    "stripe_subscription_id",
                    models.CharField(
                        blank=True,
                        help_text="Recurring subscription to stop on cancellation, if any",
                        max_length=255,
                    ),
                ),
            ],
            options={
                "verbose_name": "membership",
                "verbose_name_plural": "memberships",
                "ordering": ["-start_at"],
            },
        ),
        migrations.CreateModel(
            name="UserMembership",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "membership",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="user_links",
                        to="entitlements.membership",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="membership_links",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "user membership",
                "verbose_name_plural": "user memberships",
            },
        ),
        migrations.CreateModel(
            name="AssociationMembership",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "association",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="membership_links",
                        to="accounts.association",
                    ),
                ),
                (
                    "membership",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="association_links",
                        to="entitlements.membership",
                    ),
                ),
            ],
            options={
                "verbose_name": "association membership",
                "verbose_name_plural": "association memberships",
            },
        ),
        migrations.AddField(
            model_name="membership",
            name="users",
            field=models.ManyToManyField(
                blank=True,
                related_name="memberships",
                through="entitlements.UserMembership",
                to=settings.AUTH_USER_MODEL,
            ),
        ),
        migrations.AddField(
            model_name="membership",
            name="associations",
            field=models.ManyToManyField(
                blank=True,
                related_name="memberships",
                through="entitlements.AssociationMembership",
                to="accounts.association",
            ),
        ),
        migrations.AddIndex(
            model_name="membership",
            index=models.Index(
                fields=["state", "end_at"],
                name="membership_state_end_idx",
            ),
        ),
        migrations.AddConstraint(
            model_name="usermembership",
            constraint=models.UniqueConstraint(
                fields=("user", "membership"),
                name="unique_user_membership",
            ),
        ),
        migrations.AddConstraint(
            model_name="associationmembership",
            constraint=models.UniqueConstraint(
                fields=("association", "membership"),
                name="unique_association_membership",
            ),
        ),
        migrations.CreateModel(
            name="TrainingPurchase",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier (UUID v4)",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "proof_reference",
                    models.CharField(
                        blank=True,
                        db_index=True,
                        help_text="Stripe invoice id (in_xxx) or payment intent id for receipts",
                        max_length=255,
                        null=True,
                    ),
                ),
                (
                    "proof_url",
                    models.URLField(
                        blank=True,
                        help_text="Hosted invoice page, invoice PDF or charge receipt URL",
                        max_length=1000,
                    ),
                ),
                (
                    "proof_type",
                    models.CharField(
                        blank=True,
                        choices=[("invoice", "Invoice"), ("receipt", "Receipt")],
                        help_text="Whether the proof is an invoice or a lower-fidelity receipt",
                        max_length=20,
                    ),
                ),
                (
                    "proof_resolved_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the proof was attached",
                        null=True,
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "training_id",
                    models.CharField(
                        db_index=True,
                        help_text="Identifier of the training session bought",
                        max_length=64,
                    ),
                ),
                (
                    "price_id",
                    models.CharField(
                        blank=True,
                        help_text="Stripe price the user checked out with",
                        max_length=255,
                    ),
                ),
                (
                    "purchase_amount",
                    models.DecimalField(
                        decimal_places=2,
                        help_text="Amount actually paid in euros",
                        max_digits=10,
                    ),
                ),
                (
                    "original_price",
                    models.DecimalField(
                        decimal_places=2,
                        help_text="Catalog price before discount",
                        max_digits=10,
                    ),
                ),
                (
                    "member_discount",
                    models.DecimalField(
                        decimal_places=2,
                        default=0,
                        help_text="Discount applied for members",
                        max_digits=10,
                    ),
                ),
                (
                    "hours_purchased",
                    models.PositiveIntegerField(
                        default=0,
                        help_text="Training hours included",
                    ),
                ),
                (
                    "hours_consumed",
                    models.PositiveIntegerField(
                        default=0,
                        help_text="Training hours already attended",
                    ),
                ),
                ("payment_status", models.CharField(default="paid", max_length=20)),
                (
                    "stripe_session_id",
                    models.CharField(
                        db_index=True,
                        help_text="Checkout session that paid for this purchase",
                        max_length=255,
                    ),
                ),
                (
                    "stripe_payment_intent_id",
                    models.CharField(blank=True, max_length=255),
                ),
                (
                    "purchased_at",
                    models.DateTimeField(default=django.utils.timezone.now),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="training_purchases",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "training purchase",
                "verbose_name_plural": "training purchases",
                "ordering": ["-purchased_at"],
            },
        ),
        migrations.AddConstraint(
            model_name="trainingpurchase",
            constraint=models.UniqueConstraint(
                fields=("user", "training_id", "stripe_session_id"),
                name="unique_training_purchase_per_session",
            ),
        ),
    ]
