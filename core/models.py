import uuid
from decimal import Decimal
from django.db import models
from django.core.validators import RegexValidator, MinValueValidator, MaxValueValidator
from django.conf import settings

slug_validator = RegexValidator(
    regex=r"^[a-z0-9]+(?:-[a-z0-9]+)*$",
    message="Uniquement minuscules, chiffres et tirets ; pas de '-' au début ni à la fin"
)

class TimeStampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    class Meta:
        abstract = True

class Organization(TimeStampedModel):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=120)
    slug = models.SlugField(unique=True, validators=[slug_validator], max_length=40)
    ncc = models.CharField(max_length=32, blank=True, default="")  # compte contribuable
    address = models.CharField(max_length=240, blank=True, default="")
    phone = models.CharField(max_length=32, blank=True, default="")

    def __str__(self):
        return f"{self.name} ({self.slug})"

ROLE_CHOICES = [
    ("owner","Owner"),
    ("admin","Admin"),
    ("manager","Manager"),
    ("cashier","Cashier"),
]

class Membership(TimeStampedModel):
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name="memberships")
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="memberships")
    role = models.CharField(max_length=16, choices=ROLE_CHOICES, default="cashier")

    class Meta:
        unique_together = [("organization","user")]


# Valeurs par défaut lues dans settings à chaque création (env POS_*)
def default_tax_rate():
    return Decimal(str(settings.POS_DEFAULT_TAX_RATE))

def default_allowed_tva_rates():
    return list(settings.POS_ALLOWED_TVA_RATES)

def default_stamp_duty_name():
    return settings.POS_STAMP_DUTY_NAME

def default_stamp_duty_amount():
    return Decimal(str(settings.POS_STAMP_DUTY_AMOUNT))

def default_money_decimals():
    return int(settings.POS_MONEY_DECIMALS)

def default_manual_discount_choices():
    return [5, 10, 15]


class StoreSettings(models.Model):
    """
    Paramètres de caisse et de facturation d'un tenant.
    Relus à chaque calcul : un changement s'applique au calcul suivant.
    """
    organization = models.OneToOneField(
        "core.Organization",
        on_delete=models.CASCADE,
        related_name="store_settings",
    )
    currency = models.CharField(max_length=3, default="XOF")
    money_decimals = models.PositiveSmallIntegerField(
        default=default_money_decimals,
        validators=[MaxValueValidator(2)],
    )
    tax_rate = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=default_tax_rate,
        validators=[MinValueValidator(0), MaxValueValidator(100)],
    )
    allowed_tva_rates = models.JSONField(default=default_allowed_tva_rates, blank=True)
    manual_discount_choices = models.JSONField(default=default_manual_discount_choices, blank=True)

    loyalty_enabled = models.BooleanField(default=False)
    loyalty_points_per_unit = models.DecimalField(max_digits=10, decimal_places=4, default=Decimal("0"))
    loyalty_point_value = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    stamp_duty_name = models.CharField(max_length=80, default=default_stamp_duty_name)
    stamp_duty_amount = models.DecimalField(max_digits=12, decimal_places=2, default=default_stamp_duty_amount)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @classmethod
    def for_org(cls, org):
        obj, _ = cls.objects.get_or_create(organization=org)
        return obj

    def __str__(self):
        return f"StoreSettings({self.organization.slug})"
