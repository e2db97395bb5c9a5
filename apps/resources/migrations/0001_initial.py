import uuid

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Resource",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "kind",
                    models.CharField(
                        choices=[
                            ("hotel_room", "Hotel room"),
                            ("car", "Car"),
                            ("tour", "Tour"),
                            ("transfer", "Transfer"),
                        ],
                        max_length=20,
                    ),
                ),
                ("title", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True)),
                ("city", models.CharField(blank=True, max_length=100)),
                ("currency", models.CharField(default="USD", max_length=3)),
                (
                    "capacity",
                    models.PositiveIntegerField(
                        default=1,
                        help_text="Number of identical units: rooms of this type, cars, tour seats.",
                        validators=[django.core.validators.MinValueValidator(1)],
                    ),
                ),
                (
                    "max_occupancy",
                    models.PositiveIntegerField(blank=True, help_text="Guests per unit or passengers per vehicle.", null=True),
                ),
                ("max_luggage", models.PositiveIntegerField(blank=True, null=True)),
                (
                    "min_stay",
                    models.PositiveIntegerField(default=1, validators=[django.core.validators.MinValueValidator(1)]),
                ),
                ("max_stay", models.PositiveIntegerField(blank=True, null=True)),
                (
                    "pricing",
                    models.JSONField(
                        default=dict,
                        help_text='Rate table, e.g. {"daily_rate": "45.00", "weekly_rate": "250.00"}.',
                    ),
                ),
                ("attributes", models.JSONField(blank=True, default=dict)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "owner",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="resources",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Resource",
                "verbose_name_plural": "Resources",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["kind", "is_active"], name="resource_kind_active_idx"),
                    models.Index(fields=["city"], name="resource_city_idx"),
                ],
            },
        ),
    ]
