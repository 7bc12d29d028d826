import uuid

from django.core.management.base import BaseCommand, CommandError
from django.db.models import Q

from inventario.models import Material
from inventario.services.movimientos import verificar_ledger


class Command(BaseCommand):
    help = (
        "Reproduce el libro de movimientos de los materiales y comprueba que "
        "el stock actual coincida con el último movimiento."
    )

    def add_arguments(self, parser):
        parser.add_argument(
            "--material",
            dest="materiales",
            action="append",
            default=[],
            help="ID o código del material a verificar (se puede repetir).",
        )

    def handle(self, *args, **options):
        qs = Material.objects.order_by("codigo")
        if options["materiales"]:
            codigos = options["materiales"]
            ids = [c for c in codigos if _es_uuid(c)]
            qs = qs.filter(Q(codigo__in=codigos) | Q(pk__in=ids))
            if not qs.exists():
                raise CommandError("No se encontró ningún material con esos identificadores.")

        inconsistentes = 0
        for material in qs:
            resultado = verificar_ledger(material)
            if resultado.consistente:
                self.stdout.write(
                    f"OK {material.codigo}: {resultado.movimientos} movimientos, "
                    f"stock {resultado.stock_registrado}"
                )
                continue

            inconsistentes += 1
            self.stdout.write(self.style.ERROR(f"INCONSISTENTE {material.codigo}"))
            for detalle in resultado.inconsistencias:
                self.stdout.write(f"  - {detalle}")

        if inconsistentes:
            raise CommandError(f"{inconsistentes} materiales con el libro de stock inconsistente.")
        self.stdout.write(self.style.SUCCESS("Libro de stock consistente."))


def _es_uuid(valor):
    try:
        uuid.UUID(str(valor))
    except ValueError:
        return False
    return True
