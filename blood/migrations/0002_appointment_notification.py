import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("blood", "0001_initial"),
        ("communication", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="appointment",
            name="notification",
            field=models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="appointments", to="communication.notification"),
        ),
    ]
