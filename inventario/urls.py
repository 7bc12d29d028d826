from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import (
    CompraMaterialViewSet,
    MaterialViewSet,
    MovimientoInventarioViewSet,
    ProveedorViewSet,
)

router = DefaultRouter()
router.register(r"materiales", MaterialViewSet, basename="material")
router.register(r"inventario/movimientos", MovimientoInventarioViewSet, basename="movimiento")
router.register(r"proveedores", ProveedorViewSet, basename="proveedor")
router.register(r"compras-materiales", CompraMaterialViewSet, basename="compra-material")


urlpatterns = [
    path("", include(router.urls)),
]
