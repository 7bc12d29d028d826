from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

import structlog
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.utils import timezone

from inventario.models import (
    CompraMaterial,
    Material,
    Moneda,
    MovimientoInventario,
    Proveedor,
    cuit_validator,
)
from inventario.services.movimientos import (
    ArgumentoInvalido,
    ConflictoConcurrencia,
    NoEncontrado,
    ResultadoMovimiento,
    normalizar_cantidad,
    registrar_movimiento,
    validar_usuario,
)
from inventario.services.numeracion import siguiente_numero

logger = structlog.get_logger(__name__)

CENTAVOS = Decimal("0.01")


def calcular_totales_compra(
    *,
    cantidad: Decimal,
    precio_unitario: Decimal,
    impuestos_porcentaje: Decimal = Decimal("0"),
) -> tuple[Decimal, Decimal, Decimal]:
    """
    Devuelve (subtotal, monto_impuestos, total), redondeados a centavos.

        subtotal = cantidad * precio_unitario
        impuestos = subtotal * porcentaje / 100
        total = subtotal + impuestos
    """
    subtotal = (cantidad * precio_unitario).quantize(CENTAVOS, rounding=ROUND_HALF_UP)
    impuestos = (subtotal * impuestos_porcentaje / Decimal("100")).quantize(
        CENTAVOS, rounding=ROUND_HALF_UP
    )
    return subtotal, impuestos, subtotal + impuestos


def _a_decimal(valor, nombre: str) -> Decimal:
    try:
        return valor if isinstance(valor, Decimal) else Decimal(str(valor))
    except (InvalidOperation, ValueError):
        raise ArgumentoInvalido(f"{nombre} inválido: {valor!r}.")


@transaction.atomic
def registrar_compra(
    *,
    material_id,
    proveedor_id,
    cantidad,
    precio_unitario,
    numero_factura: str,
    cuit_proveedor: str,
    usuario,
    fecha_compra: date | None = None,
    impuestos_porcentaje=Decimal("0"),
    moneda: str = Moneda.PESOS,
    fecha_vencimiento: date | None = None,
    estado_pago: str = CompraMaterial.EstadoPago.PENDIENTE,
    observaciones: str = "",
) -> tuple[CompraMaterial, ResultadoMovimiento]:
    """
    Registra la COMPRA de un material.

    - Calcula subtotal, impuestos y total.
    - Asigna el número COMP-AAAA-NNNN.
    - Registra un movimiento COMPRA en el libro de stock (misma transacción):
      si el movimiento falla, la compra tampoco queda registrada.
    - Actualiza el precio unitario del material si cambió (solo ese campo).
    """
    cantidad = normalizar_cantidad(cantidad)
    validar_usuario(usuario)

    precio_unitario = _a_decimal(precio_unitario, "Precio unitario")
    if not precio_unitario.is_finite() or precio_unitario < CENTAVOS:
        raise ArgumentoInvalido("El precio unitario debe ser mayor a 0.")
    precio_unitario = precio_unitario.quantize(CENTAVOS, rounding=ROUND_HALF_UP)

    impuestos_porcentaje = _a_decimal(impuestos_porcentaje or 0, "Porcentaje de impuestos")
    if not impuestos_porcentaje.is_finite() or not (0 <= impuestos_porcentaje <= 100):
        raise ArgumentoInvalido("Los impuestos deben estar entre 0% y 100%.")

    if not numero_factura or not numero_factura.strip():
        raise ArgumentoInvalido("El número de factura es obligatorio.")
    try:
        cuit_validator(cuit_proveedor or "")
    except ValidationError:
        raise ArgumentoInvalido("Formato de CUIT inválido (XX-XXXXXXXX-X).")

    if moneda not in Moneda.values:
        raise ArgumentoInvalido(f"Moneda inválida: {moneda!r}.")
    if estado_pago not in CompraMaterial.EstadoPago.values:
        raise ArgumentoInvalido(f"Estado de pago inválido: {estado_pago!r}.")

    try:
        material = Material.objects.get(pk=material_id, activo=True)
    except (Material.DoesNotExist, ValidationError, ValueError):
        raise NoEncontrado("Material no encontrado.")

    try:
        proveedor = Proveedor.objects.get(pk=proveedor_id, activo=True)
    except (Proveedor.DoesNotExist, ValidationError, ValueError):
        raise NoEncontrado("Proveedor no encontrado.")

    if fecha_compra is None:
        fecha_compra = timezone.localdate()

    subtotal, impuestos, total = calcular_totales_compra(
        cantidad=cantidad,
        precio_unitario=precio_unitario,
        impuestos_porcentaje=impuestos_porcentaje,
    )

    numero = siguiente_numero(
        CompraMaterial, prefijo="COMP", relleno=4, incluir_anio=True, campo="numero"
    )
    try:
        # Savepoint propio: si otra compra tomó el mismo número, solo se descarta este insert.
        with transaction.atomic():
            compra = CompraMaterial.objects.create(
                numero=numero,
                material=material,
                proveedor=proveedor,
                cantidad=cantidad,
                precio_unitario=precio_unitario,
                subtotal=subtotal,
                impuestos=impuestos,
                total=total,
                moneda=moneda,
                numero_factura=numero_factura.strip(),
                cuit_proveedor=cuit_proveedor,
                fecha_compra=fecha_compra,
                fecha_vencimiento=fecha_vencimiento,
                estado_pago=estado_pago,
                observaciones=observaciones or "",
                usuario=usuario,
            )
    except IntegrityError as exc:
        logger.warning("compra_numero_duplicado", numero=numero, error=str(exc))
        raise ConflictoConcurrencia(
            f"El número {numero} fue asignado a otra compra en simultáneo. Reintente."
        ) from exc

    resultado = registrar_movimiento(
        material_id=material.pk,
        tipo=MovimientoInventario.TIPO_COMPRA,
        cantidad=cantidad,
        motivo=f"Compra - Factura {compra.numero_factura}",
        referencia=compra.numero,
        usuario=usuario,
        compra=compra,
    )

    if resultado.material.precio_unitario != precio_unitario:
        resultado.material.precio_unitario = precio_unitario
        resultado.material.save(update_fields=["precio_unitario", "updated_at"])

    logger.info(
        "compra_registrada",
        compra=compra.numero,
        material=material.nombre,
        proveedor=proveedor.nombre,
        cantidad=str(cantidad),
        total=str(total),
    )
    return compra, resultado
