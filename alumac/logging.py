"""
Configuración de logging estructurado con structlog.

Los logs de Django y los de la app pasan por el mismo ProcessorFormatter:
consola con colores en desarrollo, JSON en producción.
"""
import structlog


SHARED_PROCESSORS = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.PositionalArgumentsFormatter(),
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.UnicodeDecoder(),
]


def construir_logging(nivel: str = "INFO", json: bool = False) -> dict:
    """
    Devuelve el dict para settings.LOGGING y deja structlog configurado
    para que use el logging estándar como backend.
    """
    if json:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=SHARED_PROCESSORS + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "estructurado": {
                "()": structlog.stdlib.ProcessorFormatter,
                "processors": [
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    structlog.processors.format_exc_info,
                    renderer,
                ],
                "foreign_pre_chain": SHARED_PROCESSORS,
            },
        },
        "handlers": {
            "consola": {
                "class": "logging.StreamHandler",
                "formatter": "estructurado",
            },
        },
        "root": {
            "handlers": ["consola"],
            "level": nivel,
        },
        "loggers": {
            "django.db.backends": {"level": "WARNING"},
            "inventario": {"level": nivel, "propagate": True},
        },
    }
