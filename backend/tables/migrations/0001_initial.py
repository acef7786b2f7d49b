import uuid

import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Table",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("version", models.PositiveIntegerField(default=1)),
                ("branch_id", models.UUIDField(db_index=True)),
                ("table_number", models.CharField(max_length=20)),
                ("capacity", models.PositiveSmallIntegerField(default=4)),
                ("section", models.CharField(blank=True, default="", max_length=50)),
                ("is_active", models.BooleanField(default=True)),
                ("status", models.CharField(choices=[("available", "Available"), ("occupied", "Occupied"), ("reserved", "Reserved"), ("cleaning", "Cleaning")], default="available", max_length=10)),
                ("current_order_id", models.UUIDField(blank=True, null=True)),
                ("occupied_by", models.CharField(blank=True, max_length=64, null=True)),
                ("occupied_at", models.DateTimeField(blank=True, null=True)),
                ("reserved_for", models.DateTimeField(blank=True, null=True)),
                ("reserved_until", models.DateTimeField(blank=True, null=True)),
                ("reserved_by", models.JSONField(blank=True, help_text="Guest holding the reservation: {name, phone, party_size}.", null=True)),
                ("reservation_notes", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now, editable=False)),
                ("updated_at", models.DateTimeField(default=django.utils.timezone.now)),
            ],
            options={
                "verbose_name": "Table",
                "verbose_name_plural": "Tables",
                "ordering": ["branch_id", "table_number"],
                "indexes": [models.Index(fields=["branch_id", "status"], name="table_branch_status_idx")],
            },
        ),
        migrations.AddConstraint(
            model_name="table",
            constraint=models.UniqueConstraint(fields=("branch_id", "table_number"), name="unique_table_number_per_branch"),
        ),
    ]
