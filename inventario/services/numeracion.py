from django.utils import timezone


def siguiente_numero(modelo, *, prefijo: str, relleno: int, incluir_anio: bool = False, campo: str = "codigo") -> str:
    """
    Genera el siguiente número correlativo para un documento.

    Ejemplos:
        PROV-001            (prefijo="PROV", relleno=3)
        COMP-2026-0001      (prefijo="COMP", relleno=4, incluir_anio=True)

    Toma el mayor correlativo existente con el mismo patrón y le suma uno.
    El campo es único en la base: dos altas simultáneas no pueden quedar con
    el mismo número (una de ellas falla con IntegrityError).
    """
    patron = f"{prefijo}-"
    if incluir_anio:
        patron += f"{timezone.localdate().year}-"

    existentes = modelo.objects.filter(**{f"{campo}__startswith": patron}).values_list(campo, flat=True)

    mayor = 0
    for numero in existentes:
        sufijo = numero[len(patron):]
        if sufijo.isdigit():
            mayor = max(mayor, int(sufijo))

    return f"{patron}{str(mayor + 1).zfill(relleno)}"
