# sales/tests/fixtures.py

"""
Small builders shared by the sale engine tests.
"""

from decimal import Decimal

from django.conf import settings
from django.contrib.auth import get_user_model

from catalog.models import Service
from customers.models import Customer, Pet
from products.models import Product

User = get_user_model()


def make_user(email="cashier@example.com", role="cashier", **extra):
    return User.objects.create_user(email=email, password="pass", role=role, **extra)


def make_walk_in():
    customer = Customer.objects.create(
        document_number=settings.WALK_IN_CUSTOMER_DOCUMENT,
        first_name="Consumidor",
        last_name="Final",
    )
    pet = Pet.objects.create(customer=customer, name="Mascota genérica", is_generic=True)
    return customer, pet


def make_customer(document="1020304050", email="ana@example.com", pets=1):
    customer = Customer.objects.create(
        document_number=document,
        first_name="Ana",
        last_name="Gómez",
        email=email,
    )
    created = [
        Pet.objects.create(customer=customer, name=f"Firulais {i}", species="Perro")
        for i in range(pets)
    ]
    return customer, created


def make_product(
    sku="SKU-1",
    name="Concentrado 2kg",
    price="10000.00",
    stock=10,
    tax_applicable=False,
    tax_rate="0",
    low_stock_threshold=2,
):
    return Product.objects.create(
        sku=sku,
        name=name,
        unit_price=Decimal(price),
        stock=stock,
        tax_applicable=tax_applicable,
        tax_rate=Decimal(tax_rate),
        low_stock_threshold=low_stock_threshold,
    )


def make_service(name="Baño y peluquería", price="25000.00"):
    return Service.objects.create(name=name, price=Decimal(price))


def product_line(product, quantity=1, unit_price=None):
    return {
        "product_id": str(product.pk),
        "quantity": quantity,
        "unit_price": str(unit_price if unit_price is not None else product.unit_price),
    }


def service_line(service, quantity=1, unit_price=None, **extra):
    line = {
        "service_id": str(service.pk),
        "quantity": quantity,
        "unit_price": str(unit_price if unit_price is not None else service.price),
    }
    line.update(extra)
    return line
