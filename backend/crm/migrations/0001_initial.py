from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies: list = []

    operations = [
        migrations.CreateModel(
            name="CRMSyncLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("entity_type", models.CharField(choices=[("user", "User"), ("property", "Property"), ("booking", "Booking")], max_length=20)),
                ("entity_id", models.CharField(max_length=64)),
                ("action", models.CharField(max_length=30)),
                ("status", models.CharField(choices=[("success", "Success"), ("failed", "Failed")], max_length=10)),
                ("crm_id", models.CharField(blank=True, max_length=120)),
                ("request_data", models.JSONField(blank=True, null=True)),
                ("error_message", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "indexes": [models.Index(fields=["entity_type", "entity_id"], name="crm_sync_entity_idx")],
            },
        ),
    ]
