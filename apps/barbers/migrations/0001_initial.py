import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Barber",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=120)),
                (
                    "is_active",
                    models.BooleanField(
                        default=True,
                        help_text="Inactive barbers cannot be booked and are hidden from availability.",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Barber",
                "verbose_name_plural": "Barbers",
                "ordering": ["name"],
                "indexes": [models.Index(fields=["is_active"], name="barber_active_idx")],
            },
        ),
        migrations.CreateModel(
            name="WorkingHours",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "weekday",
                    models.PositiveSmallIntegerField(
                        choices=[
                            (0, "Monday"),
                            (1, "Tuesday"),
                            (2, "Wednesday"),
                            (3, "Thursday"),
                            (4, "Friday"),
                            (5, "Saturday"),
                            (6, "Sunday"),
                        ]
                    ),
                ),
                ("start_time", models.TimeField()),
                ("end_time", models.TimeField()),
                (
                    "barber",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="working_hours",
                        to="barbers.barber",
                    ),
                ),
            ],
            options={
                "verbose_name": "Working hours",
                "verbose_name_plural": "Working hours",
                "ordering": ["barber", "weekday", "start_time"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("end_time__gt", models.F("start_time"))),
                        name="working_hours_end_after_start",
                    ),
                    models.UniqueConstraint(
                        fields=("barber", "weekday", "start_time"),
                        name="working_hours_unique_shift_start",
                    ),
                ],
            },
        ),
    ]
