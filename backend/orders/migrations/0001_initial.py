import uuid
from decimal import Decimal

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("tables", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Order",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("version", models.PositiveIntegerField(default=1, help_text="Optimistic concurrency token, bumped on every write.")),
                ("order_number", models.CharField(blank=True, max_length=40, null=True)),
                ("company_id", models.UUIDField(blank=True, db_index=True, null=True)),
                ("branch_id", models.UUIDField(db_index=True)),
                ("business_date", models.DateField(default=django.utils.timezone.localdate, help_text="Local calendar day the order belongs to. Bounds same-day queries.")),
                ("order_type", models.CharField(choices=[("dine-in", "Dine In"), ("takeaway", "Takeaway"), ("delivery", "Delivery")], default="dine-in", max_length=10)),
                ("table_number", models.CharField(blank=True, default="", help_text="Snapshot of the table number, kept after the table link is removed.", max_length=20)),
                ("waiter_id", models.CharField(blank=True, max_length=64, null=True)),
                ("customer_id", models.UUIDField(blank=True, null=True)),
                ("guest_name", models.CharField(blank=True, default="", max_length=150)),
                ("guest_phone", models.CharField(blank=True, default="", max_length=20)),
                ("guest_email", models.EmailField(blank=True, default="", max_length=254)),
                ("notes", models.TextField(blank=True, default="")),
                ("status", models.CharField(choices=[("pending", "Pending"), ("confirmed", "Confirmed"), ("preparing", "Preparing"), ("ready", "Ready"), ("served", "Served"), ("completed", "Completed"), ("cancelled", "Cancelled")], default="pending", max_length=10)),
                ("payment_status", models.CharField(choices=[("pending", "Pending"), ("partial", "Partially Paid"), ("paid", "Paid"), ("refunded", "Refunded")], default="pending", max_length=10)),
                ("subtotal", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=10)),
                ("tax_rate", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=5)),
                ("tax_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=10)),
                ("service_charge_rate", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=5)),
                ("service_charge_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=10)),
                ("discount_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=10)),
                ("delivery_fee", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=10)),
                ("total", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=10)),
                ("paid_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=10)),
                ("remaining_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=10)),
                ("is_split", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now, editable=False)),
                ("updated_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("confirmed_at", models.DateTimeField(blank=True, null=True)),
                ("completed_at", models.DateTimeField(blank=True, db_index=True, help_text="Timestamp when order was marked as completed. Use this for daily reports and revenue tracking.", null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("cancellation_reason", models.CharField(blank=True, default="", max_length=255)),
                ("parent_order", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="split_orders", to="orders.order")),
                ("table", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="orders", to="tables.table")),
            ],
            options={
                "verbose_name": "Order",
                "verbose_name_plural": "Orders",
                "ordering": ["-created_at", "order_number"],
                "indexes": [
                    models.Index(fields=["branch_id", "status"], name="order_branch_status_idx"),
                    models.Index(fields=["branch_id", "business_date", "order_type"], name="order_branch_day_type_idx"),
                    models.Index(fields=["table", "business_date"], name="order_table_day_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="OrderItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("position", models.PositiveIntegerField(help_text="Zero-based index of the line within its order.")),
                ("menu_item_id", models.UUIDField()),
                ("name", models.CharField(max_length=200)),
                ("base_price", models.DecimalField(decimal_places=2, max_digits=10)),
                ("quantity", models.PositiveIntegerField(default=1)),
                ("variant_name", models.CharField(blank=True, max_length=100, null=True)),
                ("variant_price_modifier", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ("addons", models.JSONField(blank=True, default=list, help_text="Selected add-ons as [{name, price}], prices stored as strings.")),
                ("unit_price", models.DecimalField(decimal_places=2, max_digits=10)),
                ("total_price", models.DecimalField(decimal_places=2, max_digits=10)),
                ("notes", models.CharField(blank=True, default="", max_length=255)),
                ("status", models.CharField(choices=[("pending", "Pending"), ("preparing", "Preparing"), ("ready", "Ready"), ("served", "Served")], default="pending", max_length=10)),
                ("sent_to_kitchen_at", models.DateTimeField(blank=True, null=True)),
                ("prepared_at", models.DateTimeField(blank=True, null=True)),
                ("served_at", models.DateTimeField(blank=True, null=True)),
                ("order", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="items", to="orders.order")),
            ],
            options={
                "ordering": ["position"],
            },
        ),
        migrations.AddConstraint(
            model_name="order",
            constraint=models.UniqueConstraint(condition=models.Q(("order_number__isnull", False)), fields=("branch_id", "order_number"), name="unique_order_number_per_branch"),
        ),
        migrations.AddConstraint(
            model_name="orderitem",
            constraint=models.UniqueConstraint(fields=("order", "position"), name="unique_item_position_per_order"),
        ),
    ]
