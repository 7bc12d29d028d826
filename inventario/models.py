import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator, RegexValidator
from django.db import models
from django.utils import timezone


class TimeStampedModel(models.Model):
    """
    Modelo base abstracto con timestamps estándar.
    """
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class Moneda(models.TextChoices):
    PESOS = "PESOS", "Pesos"
    DOLARES = "DOLARES", "Dólares"


cuit_validator = RegexValidator(
    regex=r"^[0-9]{2}-[0-9]{8}-[0-9]$",
    message="Formato de CUIT inválido (XX-XXXXXXXX-X).",
)


class Proveedor(TimeStampedModel):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    codigo = models.CharField(
        max_length=20,
        unique=True,
        editable=False,
        help_text="Código interno generado al crear el proveedor (PROV-001).",
    )
    nombre = models.CharField(max_length=100)
    email = models.EmailField(blank=True)
    telefono = models.CharField(max_length=15, blank=True)
    direccion = models.CharField(max_length=200, blank=True)
    cuit = models.CharField(max_length=13, blank=True, validators=[cuit_validator])
    notas = models.TextField(max_length=500, blank=True)
    activo = models.BooleanField(default=True)

    class Meta:
        verbose_name = "Proveedor"
        verbose_name_plural = "Proveedores"
        ordering = ["nombre"]

    def __str__(self):
        return f"{self.codigo} - {self.nombre}"


class Material(TimeStampedModel):
    """
    Catálogo de materiales (perfiles, vidrios, accesorios...).

    El stock vive en el propio material. Después de crearlo, `stock_actual`
    solo lo modifica el libro de movimientos
    (inventario.services.movimientos.registrar_movimiento).
    """

    class Tipo(models.TextChoices):
        PERFIL = "PERFIL", "Perfil"
        VIDRIO = "VIDRIO", "Vidrio"
        ACCESORIO = "ACCESORIO", "Accesorio"
        HERRAMIENTAS = "HERRAMIENTAS", "Herramientas"
        INSUMOS = "INSUMOS", "Insumos"
        OTRO = "OTRO", "Otro"

    NIVEL_CRITICO = "critico"
    NIVEL_BAJO = "bajo"
    NIVEL_NORMAL = "normal"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    codigo = models.CharField(
        max_length=20,
        unique=True,
        validators=[
            RegexValidator(
                regex=r"^[A-Z0-9\-_]+$",
                message=(
                    "El código solo puede contener letras mayúsculas, números, "
                    "guiones y guiones bajos."
                ),
            )
        ],
    )
    nombre = models.CharField(max_length=100)
    descripcion = models.TextField(max_length=500, blank=True)
    tipo = models.CharField(max_length=20, choices=Tipo.choices, default=Tipo.OTRO)
    unidad_medida = models.CharField(
        max_length=20,
        help_text="Unidad en que se cuenta el stock (ej: kg, m, unidad, barra).",
    )
    precio_unitario = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    moneda = models.CharField(max_length=10, choices=Moneda.choices, default=Moneda.PESOS)

    stock_inicial = models.DecimalField(
        max_digits=14,
        decimal_places=3,
        default=0,
        editable=False,
        help_text="Stock con el que se dio de alta el material (base del libro de movimientos).",
    )
    stock_actual = models.DecimalField(
        max_digits=14,
        decimal_places=3,
        default=0,
        validators=[MinValueValidator(Decimal("0"))],
        help_text="Cantidad disponible, en la unidad de medida del material.",
    )
    stock_minimo = models.DecimalField(
        max_digits=14,
        decimal_places=3,
        default=0,
        validators=[MinValueValidator(Decimal("0"))],
        help_text="Cantidad mínima recomendada antes de reponer.",
    )
    proveedor = models.ForeignKey(
        Proveedor,
        on_delete=models.PROTECT,
        related_name="materiales",
    )
    activo = models.BooleanField(default=True)

    class Meta:
        verbose_name = "Material"
        verbose_name_plural = "Materiales"
        ordering = ["nombre"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(stock_actual__gte=0),
                name="material_stock_actual_no_negativo",
            ),
        ]

    def __str__(self):
        return f"{self.codigo} - {self.nombre}"

    def save(self, *args, **kwargs):
        # El stock de alta queda como base para reconstruir el libro.
        if self._state.adding:
            self.stock_inicial = self.stock_actual or Decimal("0")
        super().save(*args, **kwargs)

    @property
    def bajo_minimo(self) -> bool:
        """
        True si el stock está en o por debajo del mínimo definido.
        """
        stock_minimo = self.stock_minimo or Decimal("0")
        return (self.stock_actual or Decimal("0")) <= stock_minimo

    @property
    def nivel_stock(self) -> str:
        """
        Devuelve:
        - 'critico': stock_actual <= stock_minimo
        - 'bajo': stock_actual <= stock_minimo * ALUMAC_FACTOR_STOCK_BAJO
        - 'normal': el resto
        """
        stock = self.stock_actual or Decimal("0")
        minimo = self.stock_minimo or Decimal("0")
        if stock <= minimo:
            return self.NIVEL_CRITICO
        if stock <= minimo * settings.ALUMAC_FACTOR_STOCK_BAJO:
            return self.NIVEL_BAJO
        return self.NIVEL_NORMAL


class CompraMaterial(TimeStampedModel):
    """
    Compra de un material a un proveedor (una línea = un material).
    Al registrarse genera un movimiento COMPRA en el libro de stock.
    """

    class EstadoPago(models.TextChoices):
        PENDIENTE = "PENDIENTE", "Pendiente"
        PAGADO = "PAGADO", "Pagado"
        VENCIDO = "VENCIDO", "Vencido"
        CANCELADO = "CANCELADO", "Cancelado"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    numero = models.CharField(max_length=20, unique=True, editable=False)
    material = models.ForeignKey(
        Material,
        on_delete=models.PROTECT,
        related_name="compras",
    )
    proveedor = models.ForeignKey(
        Proveedor,
        on_delete=models.PROTECT,
        related_name="compras",
    )

    cantidad = models.DecimalField(max_digits=14, decimal_places=3)
    precio_unitario = models.DecimalField(max_digits=12, decimal_places=2)
    subtotal = models.DecimalField(max_digits=16, decimal_places=2)
    impuestos = models.DecimalField(
        max_digits=16,
        decimal_places=2,
        default=0,
        help_text="Monto de impuestos (no el porcentaje).",
    )
    total = models.DecimalField(max_digits=16, decimal_places=2)
    moneda = models.CharField(max_length=10, choices=Moneda.choices, default=Moneda.PESOS)

    numero_factura = models.CharField(max_length=50)
    cuit_proveedor = models.CharField(max_length=13, validators=[cuit_validator])
    fecha_compra = models.DateField()
    fecha_vencimiento = models.DateField(null=True, blank=True)
    estado_pago = models.CharField(
        max_length=20,
        choices=EstadoPago.choices,
        default=EstadoPago.PENDIENTE,
    )
    observaciones = models.TextField(max_length=500, blank=True)

    usuario = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="compras_materiales",
    )

    class Meta:
        verbose_name = "Compra de material"
        verbose_name_plural = "Compras de materiales"
        ordering = ["-fecha_compra", "-created_at"]

    def __str__(self):
        return f"{self.numero} - {self.proveedor.nombre} - {self.material.nombre}"


class MovimientoInventario(TimeStampedModel):
    """
    Entrada del libro de stock de un material.

    Es un registro de auditoría de solo inserción: guarda el stock antes y
    después del movimiento y no se modifica ni se borra una vez creado.
    """

    TIPO_ENTRADA = "ENTRADA"
    TIPO_SALIDA = "SALIDA"
    TIPO_AJUSTE = "AJUSTE"
    TIPO_COMPRA = "COMPRA"

    TIPO_CHOICES = [
        (TIPO_ENTRADA, "Entrada"),
        (TIPO_SALIDA, "Salida"),
        (TIPO_AJUSTE, "Ajuste (stock absoluto)"),
        (TIPO_COMPRA, "Compra"),
    ]

    material = models.ForeignKey(
        Material,
        on_delete=models.PROTECT,
        related_name="movimientos",
    )
    tipo = models.CharField(max_length=10, choices=TIPO_CHOICES)
    cantidad = models.DecimalField(
        max_digits=14,
        decimal_places=3,
        help_text=(
            "Cantidad solicitada. En AJUSTE es el nuevo stock absoluto, "
            "en el resto es la variación."
        ),
    )
    stock_anterior = models.DecimalField(max_digits=14, decimal_places=3)
    stock_nuevo = models.DecimalField(max_digits=14, decimal_places=3)

    motivo = models.TextField()
    referencia = models.CharField(
        max_length=100,
        blank=True,
        help_text="Referencia externa, número de documento, compra, etc.",
    )
    fecha = models.DateTimeField(default=timezone.now)

    usuario = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="movimientos_inventario",
        help_text="Usuario que registró el movimiento.",
    )
    compra = models.ForeignKey(
        CompraMaterial,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="movimientos",
    )

    class Meta:
        verbose_name = "Movimiento de inventario"
        verbose_name_plural = "Movimientos de inventario"
        ordering = ["-fecha", "-id"]
        indexes = [
            models.Index(fields=["material", "-fecha"], name="mov_material_fecha_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(cantidad__gt=0),
                name="movimiento_cantidad_positiva",
            ),
            models.CheckConstraint(
                condition=models.Q(stock_nuevo__gte=0),
                name="movimiento_stock_nuevo_no_negativo",
            ),
        ]

    def __str__(self):
        return f"{self.tipo} - {self.material} ({self.stock_anterior} → {self.stock_nuevo})"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("Los movimientos de inventario no se pueden modificar.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Los movimientos de inventario no se pueden eliminar.")
