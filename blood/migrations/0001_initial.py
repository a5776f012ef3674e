import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

BLOOD_GROUP_CHOICES = [("A+", "A+"), ("A-", "A-"), ("B+", "B+"), ("B-", "B-"), ("AB+", "AB+"), ("AB-", "AB-"), ("O+", "O+"), ("O-", "O-")]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("accounts", "0001_initial"),
        ("inventory", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="BloodRequest",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("blood_group", models.CharField(choices=BLOOD_GROUP_CHOICES, max_length=5)),
                ("units_requested", models.PositiveSmallIntegerField()),
                ("urgency", models.CharField(choices=[("LOW", "Low"), ("MEDIUM", "Medium"), ("HIGH", "High"), ("CRITICAL", "Critical")], default="MEDIUM", max_length=10)),
                ("status", models.CharField(choices=[("PENDING", "Pending"), ("APPROVED", "Approved"), ("REJECTED", "Rejected"), ("COLLECTED", "Collected"), ("VERIFIED", "Verified"), ("CANCELLED", "Cancelled"), ("NO_SHOW", "No show")], default="PENDING", max_length=12)),
                ("patient_name", models.CharField(blank=True, max_length=100)),
                ("hospital_name", models.CharField(blank=True, max_length=150)),
                ("contact_number", models.CharField(blank=True, max_length=20)),
                ("notes", models.TextField(blank=True)),
                ("units_collected", models.PositiveSmallIntegerField(default=0)),
                ("awaiting_donations", models.BooleanField(default=False)),
                ("approved_at", models.DateTimeField(blank=True, null=True)),
                ("rejected_at", models.DateTimeField(blank=True, null=True)),
                ("rejection_reason", models.TextField(blank=True)),
                ("collection_date", models.DateField(blank=True, null=True)),
                ("collection_location", models.CharField(blank=True, max_length=120)),
                ("collection_instructions", models.TextField(blank=True)),
                ("fulfilled_at", models.DateTimeField(blank=True, null=True)),
                ("collected_at", models.DateTimeField(blank=True, null=True)),
                ("verified_at", models.DateTimeField(blank=True, null=True)),
                ("reschedule_requested", models.BooleanField(default=False)),
                ("reschedule_reason", models.TextField(blank=True)),
                ("requested_collection_date", models.DateField(blank=True, null=True)),
                ("original_collection_date", models.DateField(blank=True, null=True)),
                ("no_show_at", models.DateTimeField(blank=True, null=True)),
                ("no_show_reason", models.TextField(blank=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("cancellation_reason", models.TextField(blank=True)),
                ("donors_notified", models.PositiveIntegerField(default=0)),
                ("donors_responded", models.PositiveIntegerField(default=0)),
                ("appointments_scheduled", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("allocation", models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="blood_request", to="inventory.allocationreceipt")),
                ("approved_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="blood_requests_approved", to=settings.AUTH_USER_MODEL)),
                ("requester", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="blood_requests", to=settings.AUTH_USER_MODEL)),
                ("verified_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="blood_requests_verified", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["status", "blood_group"], name="request_status_group_idx"),
                    models.Index(fields=["awaiting_donations", "status"], name="request_awaiting_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Appointment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("scheduled_date", models.DateField()),
                ("scheduled_time", models.TimeField(blank=True, null=True)),
                ("location", models.CharField(blank=True, max_length=120)),
                ("status", models.CharField(choices=[("SCHEDULED", "Scheduled"), ("CONFIRMED", "Confirmed"), ("IN_PROGRESS", "In progress"), ("COMPLETED", "Completed"), ("NO_SHOW", "No show"), ("CANCELLED", "Cancelled")], db_index=True, default="SCHEDULED", max_length=12)),
                ("kind", models.CharField(choices=[("REACTIVE", "Reactive (for a request)"), ("PROACTIVE", "Proactive"), ("WALK_IN", "Walk-in")], default="PROACTIVE", max_length=10)),
                ("units_collected", models.PositiveSmallIntegerField(default=0)),
                ("admin_notes", models.TextField(blank=True)),
                ("cancellation_reason", models.TextField(blank=True)),
                ("confirmed_at", models.DateTimeField(blank=True, null=True)),
                ("started_at", models.DateTimeField(blank=True, null=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("created_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="appointments_created", to=settings.AUTH_USER_MODEL)),
                ("donor", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="appointments", to="accounts.donorprofile")),
                ("request", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="appointments", to="blood.bloodrequest")),
            ],
            options={
                "ordering": ["scheduled_date", "scheduled_time", "id"],
            },
        ),
        migrations.CreateModel(
            name="Donation",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("units", models.PositiveSmallIntegerField()),
                ("collected_on", models.DateField(default=django.utils.timezone.localdate)),
                ("location", models.CharField(blank=True, max_length=120)),
                ("notes", models.TextField(blank=True)),
                ("eligibility_warning", models.CharField(blank=True, max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("appointment", models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="donation", to="blood.appointment")),
                ("batch", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="donations", to="inventory.inventorybatch")),
                ("donor", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="donations", to="accounts.donorprofile")),
                ("recorded_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="donations_recorded", to=settings.AUTH_USER_MODEL)),
                ("request", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="donations", to="blood.bloodrequest")),
            ],
            options={
                "ordering": ["-collected_on", "-id"],
            },
        ),
    ]
