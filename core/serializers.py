# --- FILE: core/serializers.py
from decimal import Decimal, InvalidOperation
from rest_framework import serializers
from core.models import StoreSettings


class StoreSettingsSerializer(serializers.ModelSerializer):
    class Meta:
        model = StoreSettings
        fields = [
            "currency",
            "money_decimals",
            "tax_rate",
            "allowed_tva_rates",
            "manual_discount_choices",
            "loyalty_enabled",
            "loyalty_points_per_unit",
            "loyalty_point_value",
            "stamp_duty_name",
            "stamp_duty_amount",
        ]

    def _percent_list(self, value, label):
        if not isinstance(value, list):
            raise serializers.ValidationError(f"{label} : une liste est attendue")
        out = []
        for v in value:
            try:
                d = Decimal(str(v))
            except (InvalidOperation, ValueError):
                raise serializers.ValidationError(f"{label} : valeur invalide {v!r}")
            if d < 0 or d > 100:
                raise serializers.ValidationError(f"{label} : chaque taux doit être entre 0 et 100")
            out.append(v)
        return out

    def validate_allowed_tva_rates(self, value):
        rates = self._percent_list(value, "Taux de TVA")
        if not rates:
            raise serializers.ValidationError("Au moins un taux de TVA est requis")
        return rates

    def validate_manual_discount_choices(self, value):
        return self._percent_list(value, "Remises manuelles")

    def validate_stamp_duty_amount(self, value):
        if value < 0:
            raise serializers.ValidationError("Le montant du timbre doit être positif ou zéro")
        return value

    def validate_loyalty_point_value(self, value):
        if value < 0:
            raise serializers.ValidationError("La valeur du point doit être positive ou zéro")
        return value

    def validate_loyalty_points_per_unit(self, value):
        if value < 0:
            raise serializers.ValidationError("Le taux de gain doit être positif ou zéro")
        return value
