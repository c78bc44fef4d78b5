# sales/api/urls.py

"""
SALES API URLS

Mounted at /api/sales/ by backend/urls.py:

    /api/sales/                  list, compose
    /api/sales/<uuid>/           retrieve, mutate (PATCH), delete
    /api/sales/<uuid>/status/    change status
    /api/sales/<uuid>/approve/   approve pending payment
    /api/sales/<uuid>/reject/    reject pending payment
    /api/sales/<uuid>/returns/   return / exchange
"""

from django.urls import include, path
from rest_framework.routers import SimpleRouter

from sales.api.viewsets.sale import SaleViewSet

router = SimpleRouter()
router.register(r"", SaleViewSet, basename="sales")

urlpatterns = [
    path("", include(router.urls)),
]
