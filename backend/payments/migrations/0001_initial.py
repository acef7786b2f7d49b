import uuid

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("orders", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="OrderPayment",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("method", models.CharField(choices=[("cash", "Cash"), ("card", "Card"), ("upi", "UPI"), ("wallet", "Wallet"), ("other", "Other")], max_length=10)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=10)),
                ("transaction_id", models.CharField(blank=True, help_text="Reference from the external terminal or gateway, if any.", max_length=255, null=True)),
                ("processed_by", models.CharField(blank=True, max_length=64, null=True)),
                ("paid_at", models.DateTimeField(default=django.utils.timezone.now, editable=False)),
                ("order", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="payments", to="orders.order")),
            ],
            options={
                "verbose_name": "Order Payment",
                "verbose_name_plural": "Order Payments",
                "ordering": ["paid_at"],
                "indexes": [models.Index(fields=["order", "paid_at"], name="payment_order_paid_at_idx")],
            },
        ),
    ]
