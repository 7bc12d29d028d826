import decimal
import uuid

import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


CUIT_VALIDATOR = django.core.validators.RegexValidator(
    message="Formato de CUIT inválido (XX-XXXXXXXX-X).",
    regex="^[0-9]{2}-[0-9]{8}-[0-9]$",
)


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Proveedor",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "codigo",
                    models.CharField(
                        editable=False,
                        help_text="Código interno generado al crear el proveedor (PROV-001).",
                        max_length=20,
                        unique=True,
                    ),
                ),
                ("nombre", models.CharField(max_length=100)),
                ("email", models.EmailField(blank=True, max_length=254)),
                ("telefono", models.CharField(blank=True, max_length=15)),
                ("direccion", models.CharField(blank=True, max_length=200)),
                ("cuit", models.CharField(blank=True, max_length=13, validators=[CUIT_VALIDATOR])),
                ("notas", models.TextField(blank=True, max_length=500)),
                ("activo", models.BooleanField(default=True)),
            ],
            options={
                "verbose_name": "Proveedor",
                "verbose_name_plural": "Proveedores",
                "ordering": ["nombre"],
            },
        ),
        migrations.CreateModel(
            name="Material",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "codigo",
                    models.CharField(
                        max_length=20,
                        unique=True,
                        validators=[
                            django.core.validators.RegexValidator(
                                message=(
                                    "El código solo puede contener letras mayúsculas, números, "
                                    "guiones y guiones bajos."
                                ),
                                regex="^[A-Z0-9\\-_]+$",
                            )
                        ],
                    ),
                ),
                ("nombre", models.CharField(max_length=100)),
                ("descripcion", models.TextField(blank=True, max_length=500)),
                (
                    "tipo",
                    models.CharField(
                        choices=[
                            ("PERFIL", "Perfil"),
                            ("VIDRIO", "Vidrio"),
                            ("ACCESORIO", "Accesorio"),
                            ("HERRAMIENTAS", "Herramientas"),
                            ("INSUMOS", "Insumos"),
                            ("OTRO", "Otro"),
                        ],
                        default="OTRO",
                        max_length=20,
                    ),
                ),
                (
                    "unidad_medida",
                    models.CharField(
                        help_text="Unidad en que se cuenta el stock (ej: kg, m, unidad, barra).",
                        max_length=20,
                    ),
                ),
                (
                    "precio_unitario",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=12,
                        validators=[django.core.validators.MinValueValidator(decimal.Decimal("0.01"))],
                    ),
                ),
                (
                    "moneda",
                    models.CharField(
                        choices=[("PESOS", "Pesos"), ("DOLARES", "Dólares")],
                        default="PESOS",
                        max_length=10,
                    ),
                ),
                (
                    "stock_inicial",
                    models.DecimalField(
                        decimal_places=3,
                        default=0,
                        editable=False,
                        help_text="Stock con el que se dio de alta el material (base del libro de movimientos).",
                        max_digits=14,
                    ),
                ),
                (
                    "stock_actual",
                    models.DecimalField(
                        decimal_places=3,
                        default=0,
                        help_text="Cantidad disponible, en la unidad de medida del material.",
                        max_digits=14,
                        validators=[django.core.validators.MinValueValidator(decimal.Decimal("0"))],
                    ),
                ),
                (
                    "stock_minimo",
                    models.DecimalField(
                        decimal_places=3,
                        default=0,
                        help_text="Cantidad mínima recomendada antes de reponer.",
                        max_digits=14,
                        validators=[django.core.validators.MinValueValidator(decimal.Decimal("0"))],
                    ),
                ),
                ("activo", models.BooleanField(default=True)),
                (
                    "proveedor",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="materiales",
                        to="inventario.proveedor",
                    ),
                ),
            ],
            options={
                "verbose_name": "Material",
                "verbose_name_plural": "Materiales",
                "ordering": ["nombre"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("stock_actual__gte", 0)),
                        name="material_stock_actual_no_negativo",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="CompraMaterial",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("numero", models.CharField(editable=False, max_length=20, unique=True)),
                ("cantidad", models.DecimalField(decimal_places=3, max_digits=14)),
                ("precio_unitario", models.DecimalField(decimal_places=2, max_digits=12)),
                ("subtotal", models.DecimalField(decimal_places=2, max_digits=16)),
                (
                    "impuestos",
                    models.DecimalField(
                        decimal_places=2,
                        default=0,
                        help_text="Monto de impuestos (no el porcentaje).",
                        max_digits=16,
                    ),
                ),
                ("total", models.DecimalField(decimal_places=2, max_digits=16)),
                (
                    "moneda",
                    models.CharField(
                        choices=[("PESOS", "Pesos"), ("DOLARES", "Dólares")],
                        default="PESOS",
                        max_length=10,
                    ),
                ),
                ("numero_factura", models.CharField(max_length=50)),
                ("cuit_proveedor", models.CharField(max_length=13, validators=[CUIT_VALIDATOR])),
                ("fecha_compra", models.DateField()),
                ("fecha_vencimiento", models.DateField(blank=True, null=True)),
                (
                    "estado_pago",
                    models.CharField(
                        choices=[
                            ("PENDIENTE", "Pendiente"),
                            ("PAGADO", "Pagado"),
                            ("VENCIDO", "Vencido"),
                            ("CANCELADO", "Cancelado"),
                        ],
                        default="PENDIENTE",
                        max_length=20,
                    ),
                ),
                ("observaciones", models.TextField(blank=True, max_length=500)),
                (
                    "material",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="compras",
                        to="inventario.material",
                    ),
                ),
                (
                    "proveedor",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="compras",
                        to="inventario.proveedor",
                    ),
                ),
                (
                    "usuario",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="compras_materiales",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Compra de material",
                "verbose_name_plural": "Compras de materiales",
                "ordering": ["-fecha_compra", "-created_at"],
            },
        ),
        migrations.CreateModel(
            name="MovimientoInventario",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "tipo",
                    models.CharField(
                        choices=[
                            ("ENTRADA", "Entrada"),
                            ("SALIDA", "Salida"),
                            ("AJUSTE", "Ajuste (stock absoluto)"),
                            ("COMPRA", "Compra"),
                        ],
                        max_length=10,
                    ),
                ),
                (
                    "cantidad",
                    models.DecimalField(
                        decimal_places=3,
                        help_text=(
                            "Cantidad solicitada. En AJUSTE es el nuevo stock absoluto, "
                            "en el resto es la variación."
                        ),
                        max_digits=14,
                    ),
                ),
                ("stock_anterior", models.DecimalField(decimal_places=3, max_digits=14)),
                ("stock_nuevo", models.DecimalField(decimal_places=3, max_digits=14)),
                ("motivo", models.TextField()),
                (
                    "referencia",
                    models.CharField(
                        blank=True,
                        help_text="Referencia externa, número de documento, compra, etc.",
                        max_length=100,
                    ),
                ),
                ("fecha", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "compra",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="movimientos",
                        to="inventario.compramaterial",
                    ),
                ),
                (
                    "material",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="movimientos",
                        to="inventario.material",
                    ),
                ),
                (
                    "usuario",
                    models.ForeignKey(
                        help_text="Usuario que registró el movimiento.",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="movimientos_inventario",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Movimiento de inventario",
                "verbose_name_plural": "Movimientos de inventario",
                "ordering": ["-fecha", "-id"],
                "indexes": [
                    models.Index(fields=["material", "-fecha"], name="mov_material_fecha_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("cantidad__gt", 0)),
                        name="movimiento_cantidad_positiva",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("stock_nuevo__gte", 0)),
                        name="movimiento_stock_nuevo_no_negativo",
                    ),
                ],
            },
        ),
    ]
