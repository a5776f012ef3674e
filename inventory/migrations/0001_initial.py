import django.db.models.deletion
from django.db import migrations, models

BLOOD_GROUP_CHOICES = [("A+", "A+"), ("A-", "A-"), ("B+", "B+"), ("B-", "B-"), ("AB+", "AB+"), ("AB-", "AB-"), ("O+", "O+"), ("O-", "O-")]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("accounts", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="InventoryBatch",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("blood_group", models.CharField(choices=BLOOD_GROUP_CHOICES, db_index=True, max_length=5)),
                ("units", models.PositiveIntegerField(default=0)),
                ("collection_date", models.DateField()),
                ("expiry_date", models.DateField(db_index=True)),
                ("location", models.CharField(blank=True, max_length=120)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("donor", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="batches", to="accounts.donorprofile")),
            ],
            options={
                "ordering": ["expiry_date", "id"],
                "indexes": [models.Index(fields=["blood_group", "expiry_date"], name="batch_group_expiry_idx")],
            },
        ),
        migrations.CreateModel(
            name="AllocationReceipt",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("blood_group", models.CharField(choices=BLOOD_GROUP_CHOICES, max_length=5)),
                ("units", models.PositiveIntegerField()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("restored_at", models.DateTimeField(blank=True, null=True)),
            ],
        ),
        migrations.CreateModel(
            name="AllocationLine",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("blood_group", models.CharField(choices=BLOOD_GROUP_CHOICES, max_length=5)),
                ("expiry_date", models.DateField()),
                ("units", models.PositiveIntegerField()),
                ("batch", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="allocation_lines", to="inventory.inventorybatch")),
                ("receipt", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="lines", to="inventory.allocationreceipt")),
            ],
        ),
        migrations.CreateModel(
            name="InventoryThreshold",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("blood_group", models.CharField(choices=BLOOD_GROUP_CHOICES, max_length=5, unique=True)),
                ("minimum_units", models.PositiveIntegerField(default=5)),
                ("target_units", models.PositiveIntegerField(default=20)),
                ("alert_enabled", models.BooleanField(default=True)),
                ("last_alert_at", models.DateTimeField(blank=True, null=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["blood_group"],
            },
        ),
    ]
