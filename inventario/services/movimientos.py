from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

import structlog
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import DatabaseError, OperationalError, transaction

from inventario.models import CompraMaterial, Material, MovimientoInventario
from inventario.signals import movimiento_registrado

logger = structlog.get_logger(__name__)

CANTIDAD_MINIMA = Decimal("0.001")
# DecimalField(max_digits=14, decimal_places=3)
CANTIDAD_MAXIMA = Decimal("99999999999.999")

TIPOS_MOVIMIENTO = frozenset(
    {
        MovimientoInventario.TIPO_ENTRADA,
        MovimientoInventario.TIPO_SALIDA,
        MovimientoInventario.TIPO_AJUSTE,
        MovimientoInventario.TIPO_COMPRA,
    }
)


class MovimientoInventarioError(Exception):
    """Errores de dominio al registrar movimientos de inventario."""

    codigo = "INVENTARIO_ERROR"


class NoEncontrado(MovimientoInventarioError):
    """El material (o recurso relacionado) no existe o está inactivo."""

    codigo = "NOT_FOUND"


class ArgumentoInvalido(MovimientoInventarioError):
    """Datos de entrada inválidos. No se reintenta: hay que corregir la entrada."""

    codigo = "INVALID_ARGUMENT"


class ConflictoConcurrencia(MovimientoInventarioError):
    """No se pudo obtener el bloqueo del material a tiempo. Se puede reintentar."""

    codigo = "CONCURRENCY_CONFLICT"


class ErrorPersistencia(MovimientoInventarioError):
    """
    Falló la escritura atómica. No quedó nada escrito, pero el llamador
    debe consultar el historial antes de reintentar si el resultado es incierto.
    """

    codigo = "PERSISTENCE_ERROR"


@dataclass(frozen=True)
class ResultadoMovimiento:
    movimiento: MovimientoInventario
    material: Material


@dataclass
class VerificacionLedger:
    material: Material
    stock_calculado: Decimal
    stock_registrado: Decimal
    movimientos: int = 0
    inconsistencias: list[str] = field(default_factory=list)

    @property
    def consistente(self) -> bool:
        return not self.inconsistencias


def calcular_stock_nuevo(stock_anterior: Decimal, tipo: str, cantidad: Decimal) -> Decimal:
    """
    Función de transición del stock:
    - ENTRADA / COMPRA: suma la cantidad.
    - SALIDA: resta, recortando en 0 (nunca deja stock negativo).
    - AJUSTE: la cantidad ES el nuevo stock absoluto, no una variación.
    """
    if tipo in (MovimientoInventario.TIPO_ENTRADA, MovimientoInventario.TIPO_COMPRA):
        return stock_anterior + cantidad
    if tipo == MovimientoInventario.TIPO_SALIDA:
        return max(Decimal("0"), stock_anterior - cantidad)
    if tipo == MovimientoInventario.TIPO_AJUSTE:
        return cantidad
    raise ArgumentoInvalido(f"Tipo de movimiento inválido: {tipo!r}.")


def normalizar_cantidad(valor) -> Decimal:
    """
    Convierte la cantidad a Decimal con 3 decimales y valida que sea positiva.
    Los float se convierten pasando por str para no arrastrar error binario.
    """
    if valor is None or isinstance(valor, bool):
        raise ArgumentoInvalido("La cantidad es obligatoria.")
    try:
        cantidad = valor if isinstance(valor, Decimal) else Decimal(str(valor).strip())
    except (InvalidOperation, ValueError):
        raise ArgumentoInvalido(f"Cantidad inválida: {valor!r}.")

    if not cantidad.is_finite():
        raise ArgumentoInvalido(f"Cantidad inválida: {valor!r}.")

    cantidad = cantidad.quantize(CANTIDAD_MINIMA, rounding=ROUND_HALF_UP)
    if cantidad < CANTIDAD_MINIMA:
        raise ArgumentoInvalido("La cantidad debe ser mayor a 0.")
    if cantidad > CANTIDAD_MAXIMA:
        raise ArgumentoInvalido("La cantidad es demasiado grande.")
    return cantidad


def _validar_tipo(tipo) -> str:
    if tipo not in TIPOS_MOVIMIENTO:
        raise ArgumentoInvalido(
            f"Tipo de movimiento inválido: {tipo!r}. "
            f"Debe ser uno de {', '.join(sorted(TIPOS_MOVIMIENTO))}."
        )
    return tipo


def validar_usuario(usuario) -> None:
    if usuario is None or not getattr(usuario, "is_authenticated", False):
        raise ArgumentoInvalido("El movimiento debe registrarlo un usuario autenticado.")


def _buscar_material(material_id, *, solo_activos: bool = True) -> Material:
    qs = Material.objects.all()
    if solo_activos:
        qs = qs.filter(activo=True)
    try:
        return qs.get(pk=material_id)
    except (Material.DoesNotExist, ValidationError, ValueError):
        raise NoEncontrado("Material no encontrado.")


def registrar_movimiento(
    *,
    material_id,
    tipo: str,
    cantidad,
    motivo: str,
    usuario,
    referencia: str | None = None,
    compra: CompraMaterial | None = None,
) -> ResultadoMovimiento:
    """
    Registra un movimiento de stock sobre un material.

    Toda la validación ocurre antes de abrir la transacción. Dentro de ella:
    1. Bloquea la fila del material (SELECT ... FOR UPDATE).
    2. Calcula el stock nuevo a partir del stock bloqueado.
    3. Crea el MovimientoInventario con stock anterior/nuevo.
    4. Guarda solo el campo stock_actual del material.

    Movimientos concurrentes sobre el mismo material quedan serializados por
    el bloqueo; sobre materiales distintos no se bloquean entre sí.
    """
    tipo = _validar_tipo(tipo)
    cantidad = normalizar_cantidad(cantidad)

    if not motivo or not str(motivo).strip():
        raise ArgumentoInvalido("El motivo es obligatorio.")
    motivo = str(motivo).strip()
    referencia = (referencia or "").strip()
    if len(referencia) > 100:
        raise ArgumentoInvalido("La referencia no puede exceder 100 caracteres.")

    validar_usuario(usuario)
    _buscar_material(material_id)

    try:
        with transaction.atomic():
            try:
                material = Material.objects.select_for_update().get(pk=material_id, activo=True)
            except Material.DoesNotExist:
                # Desactivado entre la validación y el bloqueo.
                raise NoEncontrado("Material no encontrado.")
            except OperationalError as exc:
                logger.warning(
                    "movimiento_bloqueo_fallido",
                    material_id=str(material_id),
                    tipo=tipo,
                    error=str(exc),
                )
                raise ConflictoConcurrencia(
                    "El material está siendo actualizado por otro movimiento. Reintente."
                ) from exc

            stock_anterior = material.stock_actual or Decimal("0")
            stock_nuevo = calcular_stock_nuevo(stock_anterior, tipo, cantidad)
            if stock_nuevo > CANTIDAD_MAXIMA:
                raise ArgumentoInvalido("El stock resultante excede el máximo permitido.")

            movimiento = MovimientoInventario.objects.create(
                material=material,
                tipo=tipo,
                cantidad=cantidad,
                stock_anterior=stock_anterior,
                stock_nuevo=stock_nuevo,
                motivo=motivo,
                referencia=referencia,
                usuario=usuario,
                compra=compra,
            )

            material.stock_actual = stock_nuevo
            material.save(update_fields=["stock_actual", "updated_at"])
    except MovimientoInventarioError:
        raise
    except DatabaseError as exc:
        logger.error(
            "movimiento_persistencia_fallida",
            material_id=str(material_id),
            tipo=tipo,
            cantidad=str(cantidad),
            error=str(exc),
        )
        raise ErrorPersistencia(
            "No se pudo registrar el movimiento de stock. Verifique el historial antes de reintentar."
        ) from exc

    logger.info(
        "movimiento_registrado",
        material_id=str(material.pk),
        material=material.nombre,
        tipo=tipo,
        cantidad=str(cantidad),
        stock_anterior=str(stock_anterior),
        stock_nuevo=str(stock_nuevo),
        usuario_id=usuario.pk,
    )

    transaction.on_commit(
        lambda: movimiento_registrado.send(
            sender=MovimientoInventario,
            movimiento=movimiento,
            material=material,
        )
    )

    return ResultadoMovimiento(movimiento=movimiento, material=material)


def listar_movimientos(*, material_id, limite=None) -> list[MovimientoInventario]:
    """
    Devuelve los últimos `limite` movimientos de un material, del más nuevo
    al más antiguo, con usuario, compra y proveedor de la compra ya cargados.
    Sin efectos secundarios.
    """
    config = settings.ALUMAC_MOVIMIENTOS
    if limite is None:
        limite = config["LIMITE_DEFECTO"]
    try:
        limite = int(limite)
    except (TypeError, ValueError):
        raise ArgumentoInvalido(f"Límite inválido: {limite!r}.")
    if limite < 1 or limite > config["LIMITE_MAXIMO"]:
        raise ArgumentoInvalido(
            f"El límite debe estar entre 1 y {config['LIMITE_MAXIMO']}."
        )

    # El historial de un material desactivado sigue siendo consultable.
    material = _buscar_material(material_id, solo_activos=False)

    qs = (
        MovimientoInventario.objects.filter(material=material)
        .select_related("usuario", "compra", "compra__proveedor")
        .order_by("-fecha", "-id")
    )
    return list(qs[:limite])


def verificar_ledger(material: Material) -> VerificacionLedger:
    """
    Reproduce el libro de movimientos de un material en orden de inserción y
    comprueba que:
    - cada stock_nuevo sea la transición de su stock_anterior,
    - cada movimiento parta del stock_nuevo del anterior (o del stock inicial),
    - el stock actual del material coincida con el último stock_nuevo.
    """
    stock = material.stock_inicial or Decimal("0")
    resultado = VerificacionLedger(
        material=material,
        stock_calculado=stock,
        stock_registrado=material.stock_actual,
    )

    for mov in MovimientoInventario.objects.filter(material=material).order_by("id"):
        resultado.movimientos += 1
        if mov.stock_anterior != stock:
            resultado.inconsistencias.append(
                f"Movimiento {mov.pk}: stock_anterior {mov.stock_anterior} "
                f"no coincide con el stock previo {stock}."
            )
        esperado = calcular_stock_nuevo(mov.stock_anterior, mov.tipo, mov.cantidad)
        if mov.stock_nuevo != esperado:
            resultado.inconsistencias.append(
                f"Movimiento {mov.pk}: stock_nuevo {mov.stock_nuevo} "
                f"debería ser {esperado} ({mov.tipo} {mov.cantidad})."
            )
        stock = mov.stock_nuevo

    resultado.stock_calculado = stock
    if material.stock_actual != stock:
        resultado.inconsistencias.append(
            f"Stock actual {material.stock_actual} no coincide con el libro ({stock})."
        )
    return resultado
