from django.conf import settings
from django.db.models import F

from inventario.models import Material


def _materiales_activos(proveedor=None):
    qs = Material.objects.select_related("proveedor").filter(activo=True)
    if proveedor is not None:
        qs = qs.filter(proveedor=proveedor)
    return qs


def obtener_materiales_criticos(*, proveedor=None):
    """
    Materiales activos con stock_actual <= stock_minimo.
    """
    return _materiales_activos(proveedor).filter(stock_actual__lte=F("stock_minimo"))


def obtener_materiales_stock_bajo(*, proveedor=None):
    """
    Materiales activos por encima del mínimo pero dentro de
    stock_minimo * ALUMAC_FACTOR_STOCK_BAJO.
    """
    factor = settings.ALUMAC_FACTOR_STOCK_BAJO
    return _materiales_activos(proveedor).filter(
        stock_actual__gt=F("stock_minimo"),
        stock_actual__lte=F("stock_minimo") * factor,
    )


def obtener_materiales_stock_normal(*, proveedor=None):
    factor = settings.ALUMAC_FACTOR_STOCK_BAJO
    return _materiales_activos(proveedor).filter(stock_actual__gt=F("stock_minimo") * factor)


FILTROS_NIVEL_STOCK = {
    Material.NIVEL_CRITICO: obtener_materiales_criticos,
    Material.NIVEL_BAJO: obtener_materiales_stock_bajo,
    Material.NIVEL_NORMAL: obtener_materiales_stock_normal,
}
