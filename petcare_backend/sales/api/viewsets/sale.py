# sales/api/viewsets/sale.py

"""
======================================================
PATH: sales/api/viewsets/sale.py
======================================================
SALE VIEWSET (STAFF)

Purpose:
- Sales history (list + retrieve with filters).
- Thin HTTP wiring over the sale engine services:
    POST   /api/sales/                  compose
    PATCH  /api/sales/<id>/             mutate
    DELETE /api/sales/<id>/             delete
    POST   /api/sales/<id>/status/      change status
    POST   /api/sales/<id>/approve/     validate a pending payment
    POST   /api/sales/<id>/reject/      reject a pending payment
    POST   /api/sales/<id>/returns/     return / exchange

Security:
- Requires sales staff (admin, cashier, groomer, veterinarian)
- approve / reject / delete are admin-only

Rules:
- Views never compute totals or touch stock; request bodies are passed to
  the services, which decode, validate and persist in one transaction.
- Every engine error is rendered by sales.api.errors.
======================================================
"""

from __future__ import annotations

from drf_spectacular.utils import extend_schema
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from sales.api.errors import sale_error_response
from sales.api.filters import SaleFilter
from sales.models import Sale
from sales.serializers import (
    ChangeStatusCommandSerializer,
    ComposeSaleCommandSerializer,
    MutateSaleCommandSerializer,
    ProcessReturnCommandSerializer,
    ReviewCommandSerializer,
    SaleSerializer,
)
from sales.services.commands import decode_change_status
from sales.services.exceptions import SaleError
from sales.services.return_processor import process_return
from sales.services.sale_composer import compose_sale
from sales.services.sale_mutator import mutate_sale
from sales.services.sale_status_service import (
    approve_sale,
    change_sale_status,
    delete_sale,
    reject_sale,
)
from users.permissions import IsAdmin, IsSalesStaff

ADMIN_ACTIONS = {"approve", "reject", "destroy"}


class SaleViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = SaleSerializer
    filterset_class = SaleFilter
    lookup_value_regex = r"[0-9a-fA-F-]{32,36}"

    def get_permissions(self):
        if self.action in ADMIN_ACTIONS:
            return [IsAdmin()]
        return [IsSalesStaff()]

    # ======================================================
    # QUERYSET
    # ======================================================

    def get_queryset(self):
        return (
            Sale.objects.all()
            .select_related("customer", "user", "origin_sale")
            .prefetch_related(
                "product_lines__product",
                "service_lines__service",
                "service_lines__pet",
                "status_changes",
            )
            .order_by("-sale_date", "-created_at")
        )

    def _render(self, aggregate, http_status=status.HTTP_200_OK):
        return Response(SaleSerializer(aggregate.sale).data, status=http_status)

    # ======================================================
    # COMPOSE / MUTATE / DELETE
    # ======================================================

    @extend_schema(request=ComposeSaleCommandSerializer, responses={201: SaleSerializer})
    def create(self, request, *args, **kwargs):
        try:
            aggregate = compose_sale(request.data, user=request.user)
        except SaleError as exc:
            return sale_error_response(exc)
        return self._render(aggregate, status.HTTP_201_CREATED)

    @extend_schema(request=MutateSaleCommandSerializer, responses={200: SaleSerializer})
    def partial_update(self, request, pk=None, *args, **kwargs):
        try:
            aggregate = mutate_sale(pk, request.data, user=request.user)
        except SaleError as exc:
            return sale_error_response(exc)
        return self._render(aggregate)

    @extend_schema(responses={204: None})
    def destroy(self, request, pk=None, *args, **kwargs):
        try:
            delete_sale(sale_id=pk, user=request.user)
        except SaleError as exc:
            return sale_error_response(exc)
        return Response(status=status.HTTP_204_NO_CONTENT)

    # ======================================================
    # STATUS
    # ======================================================

    @extend_schema(request=ChangeStatusCommandSerializer, responses={200: SaleSerializer})
    @action(detail=True, methods=["post"], url_path="status")
    def change_status(self, request, pk=None):
        try:
            command = decode_change_status(request.data)
            aggregate = change_sale_status(
                sale_id=pk,
                new_status=command.new_status,
                skip_stock_return=command.skip_stock_return,
                user=request.user,
                reason=command.reason,
            )
        except SaleError as exc:
            return sale_error_response(exc)
        return self._render(aggregate)

    @extend_schema(request=ReviewCommandSerializer, responses={200: SaleSerializer})
    @action(detail=True, methods=["post"], url_path="approve")
    def approve(self, request, pk=None):
        try:
            aggregate = approve_sale(
                sale_id=pk,
                user=request.user,
                reason=str(request.data.get("reason") or "").strip(),
            )
        except SaleError as exc:
            return sale_error_response(exc)
        return self._render(aggregate)

    @extend_schema(request=ReviewCommandSerializer, responses={200: SaleSerializer})
    @action(detail=True, methods=["post"], url_path="reject")
    def reject(self, request, pk=None):
        try:
            aggregate = reject_sale(
                sale_id=pk,
                user=request.user,
                reason=str(request.data.get("reason") or "").strip(),
            )
        except SaleError as exc:
            return sale_error_response(exc)
        return self._render(aggregate)

    # ======================================================
    # RETURNS / EXCHANGES
    # ======================================================

    @extend_schema(request=ProcessReturnCommandSerializer, responses={201: SaleSerializer})
    @action(detail=True, methods=["post"], url_path="returns")
    def returns(self, request, pk=None):
        try:
            aggregate = process_return(pk, request.data, user=request.user)
        except SaleError as exc:
            return sale_error_response(exc)
        return self._render(aggregate, status.HTTP_201_CREATED)
