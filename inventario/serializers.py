from decimal import Decimal

from rest_framework import serializers

from .models import (
    CompraMaterial,
    Material,
    Moneda,
    MovimientoInventario,
    Proveedor,
    cuit_validator,
)
from .services.numeracion import siguiente_numero


class ProveedorSerializer(serializers.ModelSerializer):
    cantidad_materiales = serializers.SerializerMethodField()

    class Meta:
        model = Proveedor
        fields = [
            "id",
            "codigo",
            "nombre",
            "email",
            "telefono",
            "direccion",
            "cuit",
            "notas",
            "activo",
            "cantidad_materiales",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "codigo", "created_at", "updated_at", "cantidad_materiales"]

    def get_cantidad_materiales(self, obj):
        anotado = getattr(obj, "cantidad_materiales", None)
        if anotado is not None:
            return anotado
        return obj.materiales.filter(activo=True).count()

    def validate_nombre(self, value):
        if len(value.strip()) < 2:
            raise serializers.ValidationError("El nombre debe tener al menos 2 caracteres.")
        return value.strip()

    def validate_telefono(self, value):
        if value and len(value) < 8:
            raise serializers.ValidationError("El teléfono debe tener al menos 8 dígitos.")
        return value

    def create(self, validated_data):
        validated_data["codigo"] = siguiente_numero(Proveedor, prefijo="PROV", relleno=3)
        return super().create(validated_data)

    def update(self, instance, validated_data):
        for campo, valor in validated_data.items():
            setattr(instance, campo, valor)
        instance.save(update_fields=[*validated_data.keys(), "updated_at"])
        return instance


class ProveedorResumenSerializer(serializers.ModelSerializer):
    class Meta:
        model = Proveedor
        fields = ["id", "codigo", "nombre", "telefono"]


class MaterialSerializer(serializers.ModelSerializer):
    """
    - `proveedor` como ID para escritura, `proveedor_detalle` para lectura.
    - `stock_actual` solo se puede informar al crear el material; después
      lo mueve únicamente el libro de movimientos.
    """

    proveedor = serializers.PrimaryKeyRelatedField(queryset=Proveedor.objects.filter(activo=True))
    proveedor_detalle = ProveedorResumenSerializer(source="proveedor", read_only=True)
    nivel_stock = serializers.SerializerMethodField()
    bajo_minimo = serializers.SerializerMethodField()

    class Meta:
        model = Material
        fields = [
            "id",
            "codigo",
            "nombre",
            "descripcion",
            "tipo",
            "unidad_medida",
            "precio_unitario",
            "moneda",
            "stock_actual",
            "stock_minimo",
            "nivel_stock",
            "bajo_minimo",
            "proveedor",
            "proveedor_detalle",
            "activo",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "activo", "created_at", "updated_at", "nivel_stock", "bajo_minimo"]

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        if self.instance is not None:
            self.fields["stock_actual"].read_only = True

    def get_nivel_stock(self, obj):
        return obj.nivel_stock

    def get_bajo_minimo(self, obj):
        return obj.bajo_minimo

    def validate_stock_actual(self, value):
        if value < 0:
            raise serializers.ValidationError("El stock no puede ser negativo.")
        return value

    def validate_stock_minimo(self, value):
        if value < 0:
            raise serializers.ValidationError("El stock mínimo no puede ser negativo.")
        return value

    def update(self, instance, validated_data):
        # Guardado por campos: nunca pisa un stock_actual movido en paralelo.
        validated_data.pop("stock_actual", None)
        for campo, valor in validated_data.items():
            setattr(instance, campo, valor)
        instance.save(update_fields=[*validated_data.keys(), "updated_at"])
        return instance


class MaterialStockSerializer(serializers.ModelSerializer):
    """Foto del material después de un movimiento."""

    class Meta:
        model = Material
        fields = ["id", "nombre", "stock_actual", "stock_minimo", "unidad_medida"]


class MaterialResumenSerializer(serializers.ModelSerializer):
    class Meta:
        model = Material
        fields = ["id", "codigo", "nombre", "unidad_medida"]


class CompraResumenSerializer(serializers.ModelSerializer):
    proveedor_nombre = serializers.CharField(source="proveedor.nombre", read_only=True)

    class Meta:
        model = CompraMaterial
        fields = ["id", "numero", "numero_factura", "proveedor_nombre"]


class MovimientoInventarioSerializer(serializers.ModelSerializer):
    material_detalle = MaterialResumenSerializer(source="material", read_only=True)
    usuario_nombre = serializers.SerializerMethodField()
    compra_detalle = CompraResumenSerializer(source="compra", read_only=True)

    class Meta:
        model = MovimientoInventario
        fields = [
            "id",
            "material",
            "material_detalle",
            "tipo",
            "cantidad",
            "stock_anterior",
            "stock_nuevo",
            "motivo",
            "referencia",
            "fecha",
            "usuario",
            "usuario_nombre",
            "compra",
            "compra_detalle",
        ]
        read_only_fields = fields

    def get_usuario_nombre(self, obj):
        usuario = obj.usuario
        return usuario.get_full_name() or usuario.get_username()


class MovimientoRequestSerializer(serializers.Serializer):
    """
    Cuerpo de POST /api/materiales/<id>/movimientos/.
    En AJUSTE la cantidad es el stock absoluto resultante.
    """

    tipo = serializers.ChoiceField(choices=MovimientoInventario.TIPO_CHOICES)
    cantidad = serializers.DecimalField(
        max_digits=14,
        decimal_places=3,
        min_value=Decimal("0.001"),
        error_messages={"min_value": "La cantidad debe ser mayor a 0."},
    )
    motivo = serializers.CharField(
        error_messages={"blank": "El motivo es requerido."},
    )
    referencia = serializers.CharField(
        required=False,
        allow_blank=True,
        max_length=100,
    )


class MovimientoCreateSerializer(MovimientoRequestSerializer):
    """Cuerpo de POST /api/inventario/movimientos/ (incluye el material)."""

    material = serializers.UUIDField(error_messages={"invalid": "ID de material inválido."})


class CompraMaterialSerializer(serializers.ModelSerializer):
    material_detalle = MaterialResumenSerializer(source="material", read_only=True)
    proveedor_detalle = ProveedorResumenSerializer(source="proveedor", read_only=True)
    usuario_nombre = serializers.SerializerMethodField()

    class Meta:
        model = CompraMaterial
        fields = [
            "id",
            "numero",
            "material",
            "material_detalle",
            "proveedor",
            "proveedor_detalle",
            "cantidad",
            "precio_unitario",
            "subtotal",
            "impuestos",
            "total",
            "moneda",
            "numero_factura",
            "cuit_proveedor",
            "fecha_compra",
            "fecha_vencimiento",
            "estado_pago",
            "observaciones",
            "usuario",
            "usuario_nombre",
            "created_at",
        ]
        read_only_fields = fields

    def get_usuario_nombre(self, obj):
        return obj.usuario.get_full_name() or obj.usuario.get_username()


class CompraMaterialRequestSerializer(serializers.Serializer):
    material = serializers.UUIDField()
    proveedor = serializers.UUIDField()
    cantidad = serializers.DecimalField(
        max_digits=14,
        decimal_places=3,
        min_value=Decimal("0.001"),
        max_value=Decimal("999999"),
    )
    precio_unitario = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        min_value=Decimal("0.01"),
        max_value=Decimal("9999999.99"),
    )
    impuestos = serializers.DecimalField(
        max_digits=5,
        decimal_places=2,
        min_value=Decimal("0"),
        max_value=Decimal("100"),
        required=False,
        default=Decimal("0"),
        help_text="Porcentaje de impuestos sobre el subtotal.",
    )
    moneda = serializers.ChoiceField(choices=Moneda.choices, default=Moneda.PESOS)
    numero_factura = serializers.CharField(max_length=50)
    cuit_proveedor = serializers.CharField(max_length=13, validators=[cuit_validator])
    fecha_compra = serializers.DateField()
    fecha_vencimiento = serializers.DateField(required=False, allow_null=True)
    estado_pago = serializers.ChoiceField(
        choices=CompraMaterial.EstadoPago.choices,
        default=CompraMaterial.EstadoPago.PENDIENTE,
    )
    observaciones = serializers.CharField(max_length=500, required=False, allow_blank=True)
