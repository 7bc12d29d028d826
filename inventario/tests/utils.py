from decimal import Decimal

from django.contrib.auth import get_user_model

from inventario.models import Material, Proveedor

User = get_user_model()


def crear_usuario(username="operario", **kwargs):
    return User.objects.create_user(username=username, password="password123", **kwargs)


def crear_proveedor(codigo="PROV-001", nombre="Aluminios del Sur", **kwargs):
    return Proveedor.objects.create(codigo=codigo, nombre=nombre, **kwargs)


def crear_material(proveedor, codigo="PERF-001", stock_actual="100", stock_minimo="10", **kwargs):
    datos = {
        "nombre": "Perfil U 20x20",
        "unidad_medida": "kg",
        "precio_unitario": Decimal("1500.00"),
        "tipo": Material.Tipo.PERFIL,
    }
    datos.update(kwargs)
    return Material.objects.create(
        codigo=codigo,
        proveedor=proveedor,
        stock_actual=Decimal(stock_actual),
        stock_minimo=Decimal(stock_minimo),
        **datos,
    )
