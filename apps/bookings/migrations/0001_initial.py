import uuid
from decimal import Decimal

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("resources", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Booking",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("booking_code", models.CharField(editable=False, max_length=16, unique=True)),
                ("start_date", models.DateField()),
                ("end_date", models.DateField()),
                ("start_time", models.TimeField(blank=True, null=True)),
                ("starts_at", models.DateTimeField(help_text="Start of the blocked interval (inclusive).")),
                ("ends_at", models.DateTimeField(help_text="End of the blocked interval (exclusive).")),
                ("units", models.PositiveIntegerField(default=1)),
                ("occupancy", models.PositiveIntegerField(default=1)),
                ("participants", models.JSONField(blank=True, default=dict)),
                ("price_breakdown", models.JSONField(default=dict, help_text="Price frozen at booking time.")),
                ("total_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("currency", models.CharField(default="USD", max_length=3)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("confirmed", "Confirmed"),
                            ("assigned", "Driver assigned"),
                            ("checked_in", "Checked in"),
                            ("active", "Active rental"),
                            ("in_progress", "In progress"),
                            ("checked_out", "Checked out"),
                            ("completed", "Completed"),
                            ("cancelled", "Cancelled"),
                        ],
                        default="pending",
                        max_length=20,
                    ),
                ),
                (
                    "payment_status",
                    models.CharField(
                        choices=[
                            ("pending", "Awaiting payment"),
                            ("paid", "Paid"),
                            ("failed", "Payment failed"),
                            ("refunded", "Refunded"),
                            ("cancelled", "Payment cancelled"),
                        ],
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("payment_intent_id", models.CharField(blank=True, max_length=255)),
                ("refund_id", models.CharField(blank=True, max_length=255)),
                ("special_requests", models.TextField(blank=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                (
                    "cancelled_by",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("requester", "Requester"),
                            ("owner", "Owner"),
                            ("admin", "Administrator"),
                            ("system", "System"),
                        ],
                        max_length=20,
                    ),
                ),
                ("cancellation_reason", models.CharField(blank=True, max_length=255)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "resource",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="bookings",
                        to="resources.resource",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="bookings",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Booking",
                "verbose_name_plural": "Bookings",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["resource", "starts_at", "ends_at"], name="booking_resource_period_idx"),
                    models.Index(fields=["status"], name="booking_status_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("ends_at__gt", models.F("starts_at"))),
                        name="booking_valid_period",
                    ),
                ],
            },
        ),
    ]
