import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

BLOOD_GROUP_CHOICES = [("A+", "A+"), ("A-", "A-"), ("B+", "B+"), ("B-", "B-"), ("AB+", "AB+"), ("AB-", "AB-"), ("O+", "O+"), ("O-", "O-")]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("blood", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Notification",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("kind", models.CharField(choices=[("DONATION_REQUEST", "Donation request"), ("APPOINTMENT_CONFIRMATION", "Appointment confirmation"), ("DONATION_THANKS", "Donation thanks"), ("ELIGIBILITY_REMINDER", "Eligibility reminder"), ("REPLENISHMENT", "Stock replenishment")], db_index=True, max_length=30)),
                ("priority", models.CharField(choices=[("LOW", "Low"), ("NORMAL", "Normal"), ("HIGH", "High"), ("URGENT", "Urgent")], default="NORMAL", max_length=10)),
                ("status", models.CharField(choices=[("PENDING", "Pending"), ("SENT", "Sent"), ("READ", "Read"), ("RESPONDED", "Responded"), ("EXPIRED", "Expired")], default="PENDING", max_length=10)),
                ("title", models.CharField(max_length=120)),
                ("body", models.TextField(blank=True)),
                ("blood_group", models.CharField(blank=True, choices=BLOOD_GROUP_CHOICES, max_length=5)),
                ("outreach_cycle", models.PositiveIntegerField(default=0)),
                ("expires_at", models.DateTimeField(blank=True, null=True)),
                ("sent_at", models.DateTimeField(blank=True, null=True)),
                ("read_at", models.DateTimeField(blank=True, null=True)),
                ("responded_at", models.DateTimeField(blank=True, null=True)),
                ("response_action", models.CharField(blank=True, choices=[("ACCEPT", "Accept"), ("DECLINE", "Decline")], max_length=10)),
                ("response_message", models.TextField(blank=True)),
                ("dispatch_reference", models.CharField(blank=True, max_length=120)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("appointment", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="notifications", to="blood.appointment")),
                ("created_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="notifications_created", to=settings.AUTH_USER_MODEL)),
                ("recipient", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="notifications", to=settings.AUTH_USER_MODEL)),
                ("request", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name="notifications", to="blood.bloodrequest")),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["recipient", "created_at"], name="notif_recipient_created_idx"),
                    models.Index(fields=["request", "recipient", "status"], name="notif_request_recipient_idx"),
                    models.Index(fields=["status", "expires_at"], name="notif_status_expiry_idx"),
                ],
            },
        ),
    ]
