import structlog
from django.dispatch import Signal, receiver

logger = structlog.get_logger(__name__)

# Se envía después del commit de cada movimiento de stock.
# kwargs: movimiento, material
movimiento_registrado = Signal()


@receiver(movimiento_registrado, dispatch_uid="inventario_avisar_stock_bajo")
def avisar_stock_bajo(sender, movimiento, material, **kwargs):
    """
    Deja constancia cuando un movimiento deja al material en o por debajo
    de su stock mínimo. Los avisos al usuario se arman a partir de este log
    y del endpoint de alertas, fuera del libro de movimientos.
    """
    if material.stock_minimo and material.bajo_minimo:
        logger.warning(
            "stock_bajo_minimo",
            material_id=str(material.pk),
            material=material.nombre,
            stock_actual=str(material.stock_actual),
            stock_minimo=str(material.stock_minimo),
            movimiento_id=movimiento.pk,
        )
