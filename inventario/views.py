import uuid

from django.db.models import Count, Q
from django.utils.dateparse import parse_date
from rest_framework import mixins, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response

from .models import CompraMaterial, Material, MovimientoInventario, Proveedor
from .serializers import (
    CompraMaterialRequestSerializer,
    CompraMaterialSerializer,
    MaterialSerializer,
    MaterialStockSerializer,
    MovimientoCreateSerializer,
    MovimientoInventarioSerializer,
    MovimientoRequestSerializer,
    ProveedorSerializer,
)
from .services.alertas import (
    FILTROS_NIVEL_STOCK,
    obtener_materiales_criticos,
    obtener_materiales_stock_bajo,
)
from .services.compras import registrar_compra
from .services.movimientos import ArgumentoInvalido, listar_movimientos, registrar_movimiento


class IsAuthenticated(permissions.IsAuthenticated):
    """
    Por ahora alcanza con estar autenticado.
    Más adelante podemos definir permisos por rol.
    """
    pass


def _cantidad_legible(valor):
    return f"{valor.normalize():f}"


def _respuesta_movimiento(resultado):
    material = resultado.material
    movimiento = resultado.movimiento
    data = {
        "movimiento": MovimientoInventarioSerializer(movimiento).data,
        "material": MaterialStockSerializer(material).data,
        "mensaje": (
            f"Stock actualizado: {_cantidad_legible(movimiento.stock_anterior)} → "
            f"{_cantidad_legible(movimiento.stock_nuevo)} {material.unidad_medida}"
        ),
    }
    return Response(data, status=status.HTTP_201_CREATED)


def _parsear_fecha(valor, nombre):
    fecha = parse_date(valor)
    if fecha is None:
        raise ValidationError({nombre: "Fecha inválida, use el formato AAAA-MM-DD."})
    return fecha


def _parsear_uuid(valor, nombre):
    try:
        return uuid.UUID(valor)
    except ValueError:
        raise ValidationError({nombre: "ID inválido."})


class ProveedorViewSet(viewsets.ModelViewSet):
    serializer_class = ProveedorSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        qs = Proveedor.objects.annotate(
            cantidad_materiales=Count("materiales", filter=Q(materiales__activo=True))
        )
        params = self.request.query_params

        activo = params.get("activo")
        if activo is not None:
            qs = qs.filter(activo=activo.lower() in ("1", "true", "si"))

        search = params.get("search")
        if search:
            qs = qs.filter(
                Q(nombre__icontains=search)
                | Q(codigo__icontains=search)
                | Q(cuit__icontains=search)
            )
        return qs

    def perform_destroy(self, instance):
        """
        DELETE no borra: desactiva el proveedor, siempre que no tenga
        materiales activos asociados.
        """
        activos = instance.materiales.filter(activo=True).count()
        if activos:
            raise ArgumentoInvalido(
                f"No se puede desactivar el proveedor: tiene {activos} materiales activos asociados."
            )
        instance.activo = False
        instance.save(update_fields=["activo", "updated_at"])


class MaterialViewSet(viewsets.ModelViewSet):
    serializer_class = MaterialSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        params = self.request.query_params
        nivel = params.get("nivel_stock")
        if nivel:
            if nivel not in FILTROS_NIVEL_STOCK:
                raise ValidationError(
                    {"nivel_stock": f"Debe ser uno de {', '.join(FILTROS_NIVEL_STOCK)}."}
                )
            qs = FILTROS_NIVEL_STOCK[nivel]()
        else:
            qs = Material.objects.select_related("proveedor").filter(activo=True)

        tipo = params.get("tipo")
        if tipo:
            qs = qs.filter(tipo=tipo)

        proveedor = params.get("proveedor")
        if proveedor:
            qs = qs.filter(proveedor_id=_parsear_uuid(proveedor, "proveedor"))

        search = params.get("search")
        if search:
            qs = qs.filter(
                Q(nombre__icontains=search)
                | Q(codigo__icontains=search)
                | Q(descripcion__icontains=search)
            )
        return qs.order_by("nombre")

    def perform_destroy(self, instance):
        # Baja lógica: el historial de movimientos se conserva.
        instance.activo = False
        instance.save(update_fields=["activo", "updated_at"])

    @action(detail=False, methods=["get"], url_path="alertas")
    def alertas(self, request):
        """
        GET /api/materiales/alertas/
        Materiales en nivel crítico y bajo.
        """
        return Response(
            {
                "criticos": MaterialSerializer(obtener_materiales_criticos(), many=True).data,
                "bajos": MaterialSerializer(obtener_materiales_stock_bajo(), many=True).data,
            }
        )

    @action(detail=True, methods=["get", "post"], url_path="movimientos")
    def movimientos(self, request, pk=None):
        """
        GET  /api/materiales/<id>/movimientos/?limit=N  -> historial, más nuevo primero.
        POST /api/materiales/<id>/movimientos/          -> registra un movimiento.
        """
        if request.method == "GET":
            movimientos = listar_movimientos(
                material_id=pk,
                limite=request.query_params.get("limit"),
            )
            return Response(
                {
                    "data": MovimientoInventarioSerializer(movimientos, many=True).data,
                    "total": len(movimientos),
                }
            )

        serializer = MovimientoRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        resultado = registrar_movimiento(
            material_id=pk,
            tipo=data["tipo"],
            cantidad=data["cantidad"],
            motivo=data["motivo"],
            referencia=data.get("referencia"),
            usuario=request.user,
        )
        return _respuesta_movimiento(resultado)


class MovimientoInventarioViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    viewsets.GenericViewSet,
):
    """
    Historial global de movimientos. Se pueden crear pero nunca editar ni borrar.
    """

    serializer_class = MovimientoInventarioSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        qs = MovimientoInventario.objects.select_related(
            "material", "usuario", "compra", "compra__proveedor"
        )
        params = self.request.query_params

        material = params.get("material")
        if material:
            qs = qs.filter(material_id=_parsear_uuid(material, "material"))

        tipo = params.get("tipo")
        if tipo:
            qs = qs.filter(tipo=tipo)

        fecha_desde = params.get("fecha_desde")
        if fecha_desde:
            qs = qs.filter(fecha__date__gte=_parsear_fecha(fecha_desde, "fecha_desde"))

        fecha_hasta = params.get("fecha_hasta")
        if fecha_hasta:
            qs = qs.filter(fecha__date__lte=_parsear_fecha(fecha_hasta, "fecha_hasta"))

        search = params.get("search")
        if search:
            qs = qs.filter(
                Q(motivo__icontains=search)
                | Q(referencia__icontains=search)
                | Q(material__nombre__icontains=search)
                | Q(material__codigo__icontains=search)
            )
        return qs.order_by("-fecha", "-id")

    def get_serializer_class(self):
        if self.action == "create":
            return MovimientoCreateSerializer
        return MovimientoInventarioSerializer

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        resultado = registrar_movimiento(
            material_id=data["material"],
            tipo=data["tipo"],
            cantidad=data["cantidad"],
            motivo=data["motivo"],
            referencia=data.get("referencia"),
            usuario=request.user,
        )
        return _respuesta_movimiento(resultado)


class CompraMaterialViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    viewsets.GenericViewSet,
):
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        qs = CompraMaterial.objects.select_related("material", "proveedor", "usuario")
        params = self.request.query_params

        for campo in ("material", "proveedor"):
            valor = params.get(campo)
            if valor:
                qs = qs.filter(**{f"{campo}_id": _parsear_uuid(valor, campo)})

        estado = params.get("estado_pago")
        if estado:
            qs = qs.filter(estado_pago=estado)
        return qs

    def get_serializer_class(self):
        if self.action == "create":
            return CompraMaterialRequestSerializer
        return CompraMaterialSerializer

    def create(self, request, *args, **kwargs):
        """
        Registra la compra y su movimiento COMPRA en una sola transacción.
        """
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        compra, resultado = registrar_compra(
            material_id=data["material"],
            proveedor_id=data["proveedor"],
            cantidad=data["cantidad"],
            precio_unitario=data["precio_unitario"],
            impuestos_porcentaje=data["impuestos"],
            moneda=data["moneda"],
            numero_factura=data["numero_factura"],
            cuit_proveedor=data["cuit_proveedor"],
            fecha_compra=data["fecha_compra"],
            fecha_vencimiento=data.get("fecha_vencimiento"),
            estado_pago=data["estado_pago"],
            observaciones=data.get("observaciones", ""),
            usuario=request.user,
        )
        respuesta = CompraMaterialSerializer(compra).data
        respuesta["stock_actual"] = str(resultado.material.stock_actual)
        return Response(respuesta, status=status.HTTP_201_CREATED)
