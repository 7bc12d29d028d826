from django.contrib import admin, messages

from .models import CompraMaterial, Material, MovimientoInventario, Proveedor
from .services.movimientos import verificar_ledger


admin.site.site_header = "Administración de Inventario ALUMAC"
admin.site.site_title = "Inventario ALUMAC"


def verificar_libro_stock(modeladmin, request, queryset):
    """
    Acción admin: reproduce el libro de movimientos de cada material
    seleccionado y avisa si el stock no cierra.
    """
    consistentes = 0

    for material in queryset:
        resultado = verificar_ledger(material)
        if resultado.consistente:
            consistentes += 1
            continue
        messages.error(
            request,
            f"{material}: {len(resultado.inconsistencias)} inconsistencias. "
            f"{resultado.inconsistencias[0]}",
        )

    if consistentes:
        messages.success(request, f"{consistentes} materiales con el libro de stock consistente.")


verificar_libro_stock.short_description = "Verificar libro de stock"


@admin.register(Proveedor)
class ProveedorAdmin(admin.ModelAdmin):
    list_display = ("codigo", "nombre", "email", "telefono", "cuit", "activo", "created_at")
    list_filter = ("activo",)
    search_fields = ("codigo", "nombre", "email", "cuit")
    readonly_fields = ("codigo", "created_at", "updated_at")


@admin.register(Material)
class MaterialAdmin(admin.ModelAdmin):
    list_display = (
        "codigo",
        "nombre",
        "tipo",
        "stock_actual",
        "stock_minimo",
        "unidad_medida",
        "proveedor",
        "activo",
    )
    list_filter = ("tipo", "activo", "proveedor")
    search_fields = ("codigo", "nombre", "descripcion")
    autocomplete_fields = ("proveedor",)
    actions = [verificar_libro_stock]

    def get_readonly_fields(self, request, obj=None):
        # Una vez creado, el stock solo se mueve con movimientos.
        if obj is not None:
            return ("stock_inicial", "stock_actual", "created_at", "updated_at")
        return ("created_at", "updated_at")


@admin.register(CompraMaterial)
class CompraMaterialAdmin(admin.ModelAdmin):
    list_display = (
        "numero",
        "fecha_compra",
        "proveedor",
        "material",
        "cantidad",
        "total",
        "moneda",
        "estado_pago",
    )
    list_filter = ("estado_pago", "moneda", "proveedor")
    search_fields = ("numero", "numero_factura", "material__nombre", "proveedor__nombre")
    date_hierarchy = "fecha_compra"

    def has_add_permission(self, request):
        # Las compras entran por la API para que generen su movimiento.
        return False

    def get_readonly_fields(self, request, obj=None):
        return [f.name for f in self.model._meta.fields if f.name != "estado_pago"]


@admin.register(MovimientoInventario)
class MovimientoInventarioAdmin(admin.ModelAdmin):
    list_display = (
        "fecha",
        "tipo",
        "material",
        "cantidad",
        "stock_anterior",
        "stock_nuevo",
        "usuario",
        "referencia",
    )
    list_filter = ("tipo", "fecha", "usuario")
    search_fields = ("material__nombre", "material__codigo", "motivo", "referencia")
    date_hierarchy = "fecha"

    fieldsets = (
        (None, {
            "fields": (
                "tipo",
                "material",
                "cantidad",
                "stock_anterior",
                "stock_nuevo",
                "fecha",
            )
        }),
        ("Información adicional", {
            "classes": ("collapse",),
            "fields": (
                "motivo",
                "referencia",
                "compra",
                "usuario",
                "created_at",
            )
        }),
    )

    def get_readonly_fields(self, request, obj=None):
        return [f.name for f in self.model._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
