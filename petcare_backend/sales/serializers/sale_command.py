# sales/serializers/sale_command.py

"""
REQUEST SHAPES FOR THE SALE ENGINE (SCHEMA DOCUMENTATION)

These serializers describe request bodies for drf-spectacular. Validation
itself happens in sales.services.commands, which also accepts
locale-formatted amounts ("1.500,50") that DRF's DecimalField would reject.
"""

from rest_framework import serializers

from sales.models import Sale

AMOUNT_HELP = "Number or locale-formatted string, e.g. 15000, '15.000', '15,50'"


class ProductLineCommandSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)
    unit_price = serializers.CharField(help_text=AMOUNT_HELP)


class ServiceLineCommandSerializer(serializers.Serializer):
    service_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)
    unit_price = serializers.CharField(help_text=AMOUNT_HELP)
    pet_id = serializers.IntegerField(required=False, allow_null=True)
    temp_pet_name = serializers.CharField(required=False, allow_blank=True)
    temp_pet_species = serializers.CharField(required=False, allow_blank=True)


class _SaleHeaderCommandSerializer(serializers.Serializer):
    customer_id = serializers.IntegerField(
        required=False,
        allow_null=True,
        help_text="Omit for the walk-in customer",
    )
    user_id = serializers.UUIDField(required=False, help_text="Operator; defaults to caller")
    sale_date = serializers.DateTimeField(required=False)
    payment_method = serializers.ChoiceField(
        choices=Sale.PaymentMethod.choices, required=False
    )
    amount_tendered = serializers.CharField(required=False, help_text=AMOUNT_HELP)
    total = serializers.CharField(
        required=False, help_text="Declared total, checked against cash tendered"
    )
    payment_reference = serializers.CharField(required=False, allow_blank=True)
    qr_code = serializers.CharField(required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    receipt_attachment = serializers.CharField(required=False, allow_blank=True)


class ComposeSaleCommandSerializer(_SaleHeaderCommandSerializer):
    status = serializers.ChoiceField(
        choices=[Sale.Status.EFFECTIVE, Sale.Status.PENDING], required=False
    )
    product_lines = ProductLineCommandSerializer(many=True, required=False)
    service_lines = ServiceLineCommandSerializer(many=True, required=False)


class MutateSaleCommandSerializer(_SaleHeaderCommandSerializer):
    product_lines = ProductLineCommandSerializer(
        many=True, required=False, help_text="Replaces all product lines when present"
    )
    service_lines = ServiceLineCommandSerializer(
        many=True, required=False, help_text="Replaces all service lines when present"
    )


class ChangeStatusCommandSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Sale.Status.choices)
    skip_stock_return = serializers.BooleanField(required=False, default=False)
    reason = serializers.CharField(required=False, allow_blank=True)


class ReviewCommandSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True)


class ReturnLineCommandSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)
    unit_price = serializers.CharField(required=False, help_text=AMOUNT_HELP)


class ProcessReturnCommandSerializer(serializers.Serializer):
    returned_lines = ReturnLineCommandSerializer(many=True, required=False)
    exchange_lines = ReturnLineCommandSerializer(many=True, required=False)
    reason = serializers.CharField(required=False, allow_blank=True)
    processed_by = serializers.CharField(required=False, allow_blank=True)
    customer_balance = serializers.CharField(required=False, help_text=AMOUNT_HELP)
    amount_paid = serializers.CharField(required=False, help_text=AMOUNT_HELP)
