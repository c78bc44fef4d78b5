# sales/serializers/sale.py

from rest_framework import serializers

from sales.models import Sale, SaleProductLine, SaleServiceLine, SaleStatusChange


class SaleProductLineSerializer(serializers.ModelSerializer):
    """
    Product line snapshot (read-only).
    """

    product_name = serializers.CharField(source="product.name", read_only=True)
    sku = serializers.CharField(source="product.sku", read_only=True)
    tax_total = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = SaleProductLine
        fields = [
            "id",
            "position",
            "line_kind",
            "product",
            "product_name",
            "sku",
            "quantity",
            "unit_price",
            "subtotal",
            "unit_tax",
            "tax_total",
            "total_with_tax",
        ]
        read_only_fields = fields


class SaleServiceLineSerializer(serializers.ModelSerializer):
    service_name = serializers.CharField(source="service.name", read_only=True)
    pet_name = serializers.SerializerMethodField()
    pet_species = serializers.SerializerMethodField()

    class Meta:
        model = SaleServiceLine
        fields = [
            "id",
            "position",
            "service",
            "service_name",
            "pet",
            "pet_name",
            "pet_species",
            "temp_pet_name",
            "temp_pet_species",
            "quantity",
            "unit_price",
            "subtotal",
        ]
        read_only_fields = fields

    # walk-in lines show the descriptor typed at the counter
    def get_pet_name(self, obj):
        return obj.temp_pet_name or obj.pet.name

    def get_pet_species(self, obj):
        return obj.temp_pet_species or obj.pet.species


class SaleStatusChangeSerializer(serializers.ModelSerializer):
    class Meta:
        model = SaleStatusChange
        fields = [
            "id",
            "from_status",
            "to_status",
            "stock_reversed",
            "skip_stock_return",
            "changed_by",
            "reason",
            "changed_at",
        ]
        read_only_fields = fields


class SaleSerializer(serializers.ModelSerializer):
    """
    CANONICAL SALE SERIALIZER (READ)

    Writes never go through this serializer: the sale engine services
    validate and persist; views render the committed aggregate with it.
    """

    customer_name = serializers.CharField(source="customer.full_name", read_only=True)
    customer_document = serializers.CharField(
        source="customer.document_number", read_only=True
    )
    operator_name = serializers.SerializerMethodField()
    origin_invoice_no = serializers.SerializerMethodField()

    product_lines = SaleProductLineSerializer(many=True, read_only=True)
    service_lines = SaleServiceLineSerializer(many=True, read_only=True)
    status_changes = SaleStatusChangeSerializer(many=True, read_only=True)

    class Meta:
        model = Sale
        fields = [
            "id",
            "invoice_no",
            "sale_type",
            "status",
            "customer",
            "customer_name",
            "customer_document",
            "user",
            "operator_name",
            "sale_date",
            "subtotal_amount",
            "tax_amount",
            "total_amount",
            "payment_method",
            "amount_tendered",
            "change_amount",
            "payment_reference",
            "qr_code",
            "origin_sale",
            "origin_invoice_no",
            "notes",
            "receipt_attachment",
            "product_lines",
            "service_lines",
            "status_changes",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_operator_name(self, obj):
        return obj.user.display_name if obj.user else None

    def get_origin_invoice_no(self, obj):
        return obj.origin_sale.invoice_no if obj.origin_sale_id else None
