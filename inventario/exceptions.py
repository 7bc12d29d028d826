"""
Traducción de los errores de dominio del inventario a respuestas HTTP.

Se registra en settings.REST_FRAMEWORK["EXCEPTION_HANDLER"]. Los errores de
validación de serializers siguen usando el formato estándar de DRF.
"""
import structlog
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from inventario.services.movimientos import (
    ArgumentoInvalido,
    ConflictoConcurrencia,
    ErrorPersistencia,
    MovimientoInventarioError,
    NoEncontrado,
)

logger = structlog.get_logger(__name__)

STATUS_POR_ERROR = {
    NoEncontrado: status.HTTP_404_NOT_FOUND,
    ArgumentoInvalido: status.HTTP_400_BAD_REQUEST,
    ConflictoConcurrencia: status.HTTP_409_CONFLICT,
    ErrorPersistencia: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def manejador_excepciones(exc, context):
    if isinstance(exc, MovimientoInventarioError):
        codigo_http = status.HTTP_400_BAD_REQUEST
        for clase, valor in STATUS_POR_ERROR.items():
            if isinstance(exc, clase):
                codigo_http = valor
                break

        vista = context.get("view")
        logger.info(
            "error_inventario",
            codigo=exc.codigo,
            mensaje=str(exc),
            vista=type(vista).__name__ if vista is not None else None,
            status=codigo_http,
        )
        return Response({"error": str(exc), "codigo": exc.codigo}, status=codigo_http)

    return exception_handler(exc, context)
