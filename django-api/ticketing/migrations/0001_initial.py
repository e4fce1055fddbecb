import uuid

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
            name="Event",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=200)),
                ("description", models.TextField(blank=True)),
                ("category", models.CharField(max_length=50)),
                ("starts_at", models.DateTimeField()),
                ("ends_at", models.DateTimeField()),
                ("registration_starts_at", models.DateTimeField()),
                ("registration_ends_at", models.DateTimeField()),
                ("location", models.CharField(max_length=300)),
                ("is_published", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "organizer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="organized_events",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "db_table": "events",
                "ordering": ["starts_at"],
                "indexes": [
                    models.Index(fields=["starts_at"], name="events_starts_at_idx"),
                    models.Index(fields=["organizer"], name="events_organizer_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="TicketType",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=100)),
                ("price", models.DecimalField(decimal_places=2, default=0, max_digits=10)),
                ("max_per_user", models.PositiveIntegerField(default=1)),
                ("max_total", models.PositiveIntegerField(default=100)),
                ("sold_count", models.PositiveIntegerField(default=0)),
                ("sale_starts_at", models.DateTimeField(blank=True, null=True)),
                ("sale_ends_at", models.DateTimeField(blank=True, null=True)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="ticket_types",
                        to="ticketing.event",
                    ),
                ),
            ],
            options={
                "db_table": "tickets",
                "indexes": [models.Index(fields=["event"], name="tickets_event_idx")],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(sold_count__gte=0),
                        name="tickets_sold_count_non_negative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(sold_count__lte=models.F("max_total")),
                        name="tickets_sold_count_within_cap",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(price__gte=0),
                        name="tickets_price_non_negative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Booking",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("code", models.CharField(max_length=50, unique=True)),
                ("quantity", models.PositiveIntegerField()),
                ("amount", models.DecimalField(decimal_places=2, max_digits=12)),
                (
                    "status",
                    models.CharField(
                        choices=[("completed", "Completed"), ("refunded", "Refunded")],
                        default="completed",
                        max_length=20,
                    ),
                ),
                ("payment_method", models.CharField(default="free", max_length=50)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="bookings",
                        to="ticketing.event",
                    ),
                ),
                (
                    "ticket_type",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="bookings",
                        to="ticketing.tickettype",
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
                "db_table": "transactions",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["user", "event", "status"], name="transactions_user_event_idx"),
                    models.Index(fields=["event", "status"], name="transactions_event_idx"),
                    models.Index(fields=["-created_at"], name="transactions_created_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(quantity__gte=1),
                        name="transactions_quantity_positive",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Attendee",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=100)),
                ("email", models.EmailField(max_length=100)),
                ("phone", models.CharField(blank=True, max_length=20)),
                (
                    "gender",
                    models.CharField(
                        blank=True,
                        choices=[("male", "Male"), ("female", "Female"), ("other", "Other")],
                        max_length=10,
                    ),
                ),
                ("credential", models.UUIDField(editable=False, unique=True)),
                ("has_attended", models.BooleanField(default=False)),
                ("checked_in_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "booking",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="attendees",
                        to="ticketing.booking",
                    ),
                ),
            ],
            options={
                "db_table": "attendees",
                "ordering": ["created_at"],
                "indexes": [
                    models.Index(fields=["booking"], name="attendees_booking_idx"),
                    models.Index(fields=["has_attended"], name="attendees_attended_idx"),
                ],
            },
        ),
    ]
