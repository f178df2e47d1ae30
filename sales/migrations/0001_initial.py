import uuid
from decimal import Decimal

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


def org_fk():
    return models.ForeignKey(
        on_delete=django.db.models.deletion.CASCADE,
        related_name="%(class)ss",
        to="core.organization",
    )


def money_field(**kwargs):
    return models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14, **kwargs)


DOCUMENT_SUBTYPES = [("standard", "Standard"), ("avoir", "Avoir"), ("proforma", "Proforma")]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("core", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Customer",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("first_name", models.CharField(max_length=120)),
                ("last_name", models.CharField(blank=True, default="", max_length=120)),
                ("ncc", models.CharField(blank=True, default="", max_length=32)),
                ("phone", models.CharField(blank=True, default="", max_length=32)),
                ("email", models.EmailField(blank=True, default="", max_length=254)),
                ("address", models.CharField(blank=True, default="", max_length=240)),
                ("loyalty_points", models.PositiveIntegerField(default=0)),
                ("store_credit", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("org", org_fk()),
            ],
            options={
                "ordering": ["last_name", "first_name"],
            },
        ),
        migrations.CreateModel(
            name="PromoCode",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(max_length=32)),
                (
                    "type",
                    models.CharField(
                        choices=[("percentage", "Percentage"), ("fixed", "Fixed")],
                        default="percentage",
                        max_length=16,
                    ),
                ),
                ("value", models.DecimalField(decimal_places=2, max_digits=12)),
                ("is_active", models.BooleanField(default=True)),
                ("expires_at", models.DateTimeField(blank=True, null=True)),
                ("org", org_fk()),
            ],
            options={
                "ordering": ["code"],
                "unique_together": {("org", "code")},
            },
        ),
        migrations.CreateModel(
            name="Sale",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "payment_method",
                    models.CharField(
                        choices=[("cash", "Cash"), ("card", "Card"), ("credit", "Credit")],
                        default="cash",
                        max_length=16,
                    ),
                ),
                ("is_credit", models.BooleanField(default=False)),
                (
                    "item_status",
                    models.CharField(
                        choices=[("taken", "Taken"), ("reserved", "Reserved")],
                        default="taken",
                        max_length=16,
                    ),
                ),
                ("subtotal", money_field()),
                ("manual_discount", money_field()),
                ("promo_code", models.CharField(blank=True, default="", max_length=32)),
                ("promo_discount", money_field()),
                ("loyalty_discount", money_field()),
                ("tax_rate", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=5)),
                ("tax", money_field()),
                ("exchange_credit", money_field()),
                ("store_credit_applied", money_field()),
                ("total", money_field()),
                ("total_paid", money_field()),
                ("loyalty_points_earned", models.PositiveIntegerField(default=0)),
                ("loyalty_points_used", models.PositiveIntegerField(default=0)),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="sales",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "customer",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="sales",
                        to="sales.customer",
                    ),
                ),
                (
                    "original_sale",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="exchanges",
                        to="sales.sale",
                    ),
                ),
                ("org", org_fk()),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [models.Index(fields=["org", "created_at"], name="sales_sale_org_created_idx")],
            },
        ),
        migrations.CreateModel(
            name="SaleLine",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("variant_ref", models.CharField(max_length=64)),
                ("product_name", models.CharField(blank=True, default="", max_length=200)),
                ("variant_name", models.CharField(blank=True, default="", max_length=200)),
                ("unit_price", models.DecimalField(decimal_places=2, max_digits=12)),
                ("quantity", models.PositiveIntegerField()),
                ("line_total", models.DecimalField(decimal_places=2, max_digits=14)),
                (
                    "sale",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="lines",
                        to="sales.sale",
                    ),
                ),
            ],
        ),
        migrations.CreateModel(
            name="Installment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("amount", models.DecimalField(decimal_places=2, max_digits=14)),
                ("date", models.DateField(default=django.utils.timezone.localdate)),
                (
                    "method",
                    models.CharField(
                        choices=[
                            ("cash", "Cash"),
                            ("card", "Card"),
                            ("mobile_money", "Mobile money"),
                            ("transfer", "Transfer"),
                        ],
                        default="cash",
                        max_length=16,
                    ),
                ),
                ("notes", models.CharField(blank=True, default="", max_length=240)),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "sale",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="installments",
                        to="sales.sale",
                    ),
                ),
                ("org", org_fk()),
            ],
            options={
                "abstract": False,
            },
        ),
        migrations.CreateModel(
            name="InvoiceSequence",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "document_subtype",
                    models.CharField(choices=DOCUMENT_SUBTYPES, default="standard", max_length=16),
                ),
                ("year", models.IntegerField()),
                ("last_number", models.IntegerField(default=0)),
                ("org", org_fk()),
            ],
            options={
                "unique_together": {("org", "year", "document_subtype")},
            },
        ),
        migrations.CreateModel(
            name="Invoice",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("number", models.CharField(max_length=32)),
                (
                    "document_type",
                    models.CharField(
                        choices=[("invoice", "Invoice"), ("receipt", "Receipt")],
                        default="invoice",
                        max_length=16,
                    ),
                ),
                (
                    "invoice_type",
                    models.CharField(
                        choices=[("B2B", "B2B"), ("B2C", "B2C"), ("B2F", "B2F"), ("B2G", "B2G")],
                        default="B2C",
                        max_length=8,
                    ),
                ),
                (
                    "document_subtype",
                    models.CharField(choices=DOCUMENT_SUBTYPES, default="standard", max_length=16),
                ),
                ("date_issue", models.DateField(default=django.utils.timezone.localdate)),
                ("due_date", models.DateField(blank=True, null=True)),
                (
                    "payment_method",
                    models.CharField(
                        choices=[
                            ("card", "Carte bancaire"),
                            ("cheque", "Chèque"),
                            ("cash", "Espèces"),
                            ("mobile_money", "Mobile money"),
                            ("transfer", "Virement"),
                            ("on_account", "A terme"),
                        ],
                        default="cash",
                        max_length=16,
                    ),
                ),
                ("currency", models.CharField(default="XOF", max_length=3)),
                ("commercial_message", models.CharField(blank=True, default="", max_length=240)),
                (
                    "global_discount_percent",
                    models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=5),
                ),
                ("subtotal_ht", money_field()),
                ("total_discounts", money_field()),
                ("total_ht_after_discount", money_field()),
                ("total_tva", money_field()),
                ("total_additional_taxes", money_field()),
                ("total_ttc", money_field()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="invoices",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="invoices",
                        to="sales.customer",
                    ),
                ),
                (
                    "sale",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="invoices",
                        to="sales.sale",
                    ),
                ),
                ("org", org_fk()),
            ],
            options={
                "ordering": ["-date_issue", "-created_at"],
                "unique_together": {("org", "number")},
            },
        ),
        migrations.CreateModel(
            name="InvoiceLine",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("line_number", models.PositiveIntegerField()),
                ("variant_ref", models.CharField(blank=True, default="", max_length=64)),
                ("product_name", models.CharField(blank=True, default="", max_length=200)),
                ("variant_name", models.CharField(blank=True, default="", max_length=200)),
                ("quantity", models.DecimalField(decimal_places=3, max_digits=16)),
                ("unit_price_ht", models.DecimalField(decimal_places=2, max_digits=12)),
                (
                    "discount_percent",
                    models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=5),
                ),
                ("tva_rate", models.DecimalField(decimal_places=2, max_digits=5)),
                ("total_ht", models.DecimalField(decimal_places=2, max_digits=14)),
                ("tva_amount", models.DecimalField(decimal_places=2, max_digits=14)),
                ("total_ttc", models.DecimalField(decimal_places=2, max_digits=14)),
                (
                    "invoice",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="lines",
                        to="sales.invoice",
                    ),
                ),
            ],
            options={
                "ordering": ["line_number"],
            },
        ),
        migrations.CreateModel(
            name="InvoiceTaxLine",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("rate", models.DecimalField(decimal_places=2, max_digits=5)),
                ("base", models.DecimalField(decimal_places=2, max_digits=14)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=14)),
                (
                    "invoice",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="tva_lines",
                        to="sales.invoice",
                    ),
                ),
            ],
            options={
                "ordering": ["rate"],
            },
        ),
        migrations.CreateModel(
            name="InvoiceAdditionalTax",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=80)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=14)),
                (
                    "invoice",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="additional_taxes",
                        to="sales.invoice",
                    ),
                ),
            ],
        ),
    ]
