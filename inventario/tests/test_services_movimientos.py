import uuid
from decimal import Decimal
from unittest import mock

from django.db import DatabaseError, OperationalError, transaction
from django.db.models.query import QuerySet
from django.test import TestCase, override_settings

from inventario.models import Material, MovimientoInventario
from inventario.services import movimientos as servicio
from inventario.services.movimientos import (
    ArgumentoInvalido,
    ConflictoConcurrencia,
    ErrorPersistencia,
    NoEncontrado,
    calcular_stock_nuevo,
    listar_movimientos,
    normalizar_cantidad,
    registrar_movimiento,
    verificar_ledger,
)
from inventario.signals import movimiento_registrado

from .utils import crear_material, crear_proveedor, crear_usuario


class CalcularStockNuevoTests(TestCase):
    def test_entrada_y_compra_suman(self):
        for tipo in (MovimientoInventario.TIPO_ENTRADA, MovimientoInventario.TIPO_COMPRA):
            self.assertEqual(calcular_stock_nuevo(Decimal("10"), tipo, Decimal("2.5")), Decimal("12.5"))

    def test_salida_recorta_en_cero(self):
        self.assertEqual(
            calcular_stock_nuevo(Decimal("10"), MovimientoInventario.TIPO_SALIDA, Decimal("25")),
            Decimal("0"),
        )

    def test_ajuste_es_absoluto(self):
        self.assertEqual(
            calcular_stock_nuevo(Decimal("40"), MovimientoInventario.TIPO_AJUSTE, Decimal("33")),
            Decimal("33"),
        )


class NormalizarCantidadTests(TestCase):
    def test_float_y_str_se_redondean_a_tres_decimales(self):
        self.assertEqual(normalizar_cantidad(0.1), Decimal("0.100"))
        self.assertEqual(normalizar_cantidad("2.0005"), Decimal("2.001"))

    def test_rechaza_valores_invalidos(self):
        for valor in (None, True, "abc", "NaN", "Infinity", 0, "-5", "0.0004"):
            with self.subTest(valor=valor):
                with self.assertRaises(ArgumentoInvalido):
                    normalizar_cantidad(valor)


class RegistrarMovimientoTests(TestCase):
    def setUp(self):
        self.usuario = crear_usuario()
        self.proveedor = crear_proveedor()
        self.material = crear_material(self.proveedor, stock_actual="100")

    def _registrar(self, tipo, cantidad, motivo="Movimiento de prueba", **kwargs):
        return registrar_movimiento(
            material_id=kwargs.pop("material_id", self.material.pk),
            tipo=tipo,
            cantidad=cantidad,
            motivo=motivo,
            usuario=kwargs.pop("usuario", self.usuario),
            **kwargs,
        )

    def test_entrada_suma_stock(self):
        resultado = self._registrar(MovimientoInventario.TIPO_ENTRADA, Decimal("50"), motivo="restock")

        self.assertEqual(resultado.movimiento.stock_anterior, Decimal("100"))
        self.assertEqual(resultado.movimiento.stock_nuevo, Decimal("150"))
        self.assertEqual(resultado.material.stock_actual, Decimal("150"))

        self.material.refresh_from_db()
        self.assertEqual(self.material.stock_actual, Decimal("150"))

    def test_salida_no_deja_stock_negativo(self):
        material = crear_material(self.proveedor, codigo="VID-001", stock_actual="10")

        resultado = self._registrar(
            MovimientoInventario.TIPO_SALIDA,
            Decimal("25"),
            motivo="shipment",
            material_id=material.pk,
        )

        self.assertEqual(resultado.movimiento.stock_nuevo, Decimal("0"))
        material.refresh_from_db()
        self.assertEqual(material.stock_actual, Decimal("0"))

    def test_ajuste_fija_el_stock_absoluto(self):
        material = crear_material(self.proveedor, codigo="ACC-001", stock_actual="40")

        resultado = self._registrar(
            MovimientoInventario.TIPO_AJUSTE,
            Decimal("33"),
            motivo="physical count",
            material_id=material.pk,
        )

        self.assertEqual(resultado.movimiento.stock_anterior, Decimal("40"))
        self.assertEqual(resultado.movimiento.stock_nuevo, Decimal("33"))
        material.refresh_from_db()
        self.assertEqual(material.stock_actual, Decimal("33"))

    def test_material_inexistente(self):
        for material_id in (uuid.uuid4(), "missing-id"):
            with self.subTest(material_id=material_id):
                with self.assertRaises(NoEncontrado):
                    self._registrar(MovimientoInventario.TIPO_ENTRADA, 5, motivo="x", material_id=material_id)
        self.assertEqual(MovimientoInventario.objects.count(), 0)

    def test_material_inactivo(self):
        self.material.activo = False
        self.material.save(update_fields=["activo"])

        with self.assertRaises(NoEncontrado):
            self._registrar(MovimientoInventario.TIPO_ENTRADA, 5)
        self.assertEqual(MovimientoInventario.objects.count(), 0)

    def test_cantidad_negativa_falla_antes_de_abrir_transaccion(self):
        with mock.patch.object(servicio.transaction, "atomic", wraps=transaction.atomic) as atomic:
            with self.assertRaises(ArgumentoInvalido):
                self._registrar(MovimientoInventario.TIPO_SALIDA, Decimal("-5"), motivo="x")

        atomic.assert_not_called()
        self.assertEqual(MovimientoInventario.objects.count(), 0)

    def test_tipo_invalido(self):
        with self.assertRaises(ArgumentoInvalido):
            self._registrar("DEVOLUCION", Decimal("5"))

    def test_motivo_vacio(self):
        with self.assertRaises(ArgumentoInvalido):
            self._registrar(MovimientoInventario.TIPO_ENTRADA, Decimal("5"), motivo="   ")

    def test_referencia_demasiado_larga(self):
        with self.assertRaises(ArgumentoInvalido):
            self._registrar(MovimientoInventario.TIPO_ENTRADA, Decimal("5"), referencia="R" * 101)

    def test_usuario_requerido(self):
        with self.assertRaises(ArgumentoInvalido):
            self._registrar(MovimientoInventario.TIPO_ENTRADA, Decimal("5"), usuario=None)

    def test_guarda_motivo_referencia_y_usuario(self):
        resultado = self._registrar(
            MovimientoInventario.TIPO_ENTRADA,
            "7.25",
            motivo="  Reposición semanal  ",
            referencia="REM-0042",
        )
        movimiento = MovimientoInventario.objects.get(pk=resultado.movimiento.pk)

        self.assertEqual(movimiento.motivo, "Reposición semanal")
        self.assertEqual(movimiento.referencia, "REM-0042")
        self.assertEqual(movimiento.cantidad, Decimal("7.250"))
        self.assertEqual(movimiento.usuario, self.usuario)
        self.assertIsNone(movimiento.compra)

    def test_usa_select_for_update(self):
        original = QuerySet.select_for_update
        with mock.patch.object(
            QuerySet, "select_for_update", autospec=True, side_effect=original
        ) as select_for_update:
            self._registrar(MovimientoInventario.TIPO_ENTRADA, Decimal("1"))

        select_for_update.assert_called_once()

    def test_bloqueo_fallido_es_conflicto(self):
        bloqueado = mock.Mock()
        bloqueado.get.side_effect = OperationalError("canceling statement due to lock timeout")

        with mock.patch.object(QuerySet, "select_for_update", return_value=bloqueado):
            with self.assertRaises(ConflictoConcurrencia):
                self._registrar(MovimientoInventario.TIPO_SALIDA, Decimal("1"))

        self.material.refresh_from_db()
        self.assertEqual(self.material.stock_actual, Decimal("100"))
        self.assertEqual(MovimientoInventario.objects.count(), 0)

    def test_fallo_al_guardar_material_no_deja_movimiento(self):
        with mock.patch.object(Material, "save", side_effect=DatabaseError("disk I/O error")):
            with self.assertRaises(ErrorPersistencia) as ctx:
                self._registrar(MovimientoInventario.TIPO_ENTRADA, Decimal("50"))

        self.assertIsInstance(ctx.exception.__cause__, DatabaseError)
        self.assertEqual(MovimientoInventario.objects.count(), 0)
        self.material.refresh_from_db()
        self.assertEqual(self.material.stock_actual, Decimal("100"))

    def test_salidas_sucesivas_nunca_dejan_stock_negativo(self):
        for cantidad in ("30", "45", "60", "1", "0.5"):
            resultado = self._registrar(MovimientoInventario.TIPO_SALIDA, cantidad)
            self.assertGreaterEqual(resultado.material.stock_actual, Decimal("0"))

        self.material.refresh_from_db()
        self.assertEqual(self.material.stock_actual, Decimal("0"))

    def test_senal_se_envia_despues_del_commit(self):
        receptor = mock.Mock()
        movimiento_registrado.connect(receptor, dispatch_uid="test_receptor")
        self.addCleanup(movimiento_registrado.disconnect, dispatch_uid="test_receptor")

        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            resultado = self._registrar(MovimientoInventario.TIPO_ENTRADA, Decimal("1"))
            receptor.assert_not_called()

        self.assertEqual(len(callbacks), 1)
        receptor.assert_called_once()
        self.assertEqual(receptor.call_args.kwargs["movimiento"], resultado.movimiento)

    def test_aviso_de_stock_bajo(self):
        with mock.patch("inventario.signals.logger") as logger:
            with self.captureOnCommitCallbacks(execute=True):
                self._registrar(MovimientoInventario.TIPO_SALIDA, Decimal("95"))

        logger.warning.assert_called_once()
        self.assertEqual(logger.warning.call_args.args[0], "stock_bajo_minimo")


class ListarMovimientosTests(TestCase):
    def setUp(self):
        self.usuario = crear_usuario()
        self.material = crear_material(crear_proveedor(), stock_actual="100")
        for tipo, cantidad in (
            (MovimientoInventario.TIPO_ENTRADA, "10"),
            (MovimientoInventario.TIPO_SALIDA, "5"),
            (MovimientoInventario.TIPO_AJUSTE, "80"),
        ):
            registrar_movimiento(
                material_id=self.material.pk,
                tipo=tipo,
                cantidad=cantidad,
                motivo="Carga inicial",
                usuario=self.usuario,
            )

    def test_mas_nuevo_primero(self):
        movimientos = listar_movimientos(material_id=self.material.pk)
        self.assertEqual(
            [m.tipo for m in movimientos],
            [
                MovimientoInventario.TIPO_AJUSTE,
                MovimientoInventario.TIPO_SALIDA,
                MovimientoInventario.TIPO_ENTRADA,
            ],
        )

    def test_respeta_limite(self):
        movimientos = listar_movimientos(material_id=self.material.pk, limite=2)
        self.assertEqual(len(movimientos), 2)
        self.assertEqual(movimientos[0].tipo, MovimientoInventario.TIPO_AJUSTE)

    def test_lectura_idempotente(self):
        primera = listar_movimientos(material_id=self.material.pk)
        segunda = listar_movimientos(material_id=self.material.pk)
        self.assertEqual(
            [(m.pk, m.stock_anterior, m.stock_nuevo) for m in primera],
            [(m.pk, m.stock_anterior, m.stock_nuevo) for m in segunda],
        )

    @override_settings(ALUMAC_MOVIMIENTOS={"LIMITE_DEFECTO": 20, "LIMITE_MAXIMO": 100})
    def test_limite_invalido(self):
        for limite in (0, -1, 101, "abc"):
            with self.subTest(limite=limite):
                with self.assertRaises(ArgumentoInvalido):
                    listar_movimientos(material_id=self.material.pk, limite=limite)

    def test_material_desactivado_conserva_historial(self):
        self.material.activo = False
        self.material.save(update_fields=["activo"])
        self.assertEqual(len(listar_movimientos(material_id=self.material.pk)), 3)

    def test_material_inexistente(self):
        with self.assertRaises(NoEncontrado):
            listar_movimientos(material_id=uuid.uuid4())

    def test_no_modifica_nada(self):
        antes = MovimientoInventario.objects.count()
        listar_movimientos(material_id=self.material.pk)
        self.assertEqual(MovimientoInventario.objects.count(), antes)


class VerificarLedgerTests(TestCase):
    def setUp(self):
        self.usuario = crear_usuario()
        self.material = crear_material(crear_proveedor(), stock_actual="20")

    def test_libro_reproducido_coincide_con_stock(self):
        secuencia = [
            (MovimientoInventario.TIPO_ENTRADA, "15.5"),
            (MovimientoInventario.TIPO_SALIDA, "50"),
            (MovimientoInventario.TIPO_COMPRA, "12"),
            (MovimientoInventario.TIPO_AJUSTE, "7.125"),
            (MovimientoInventario.TIPO_SALIDA, "2"),
        ]
        for tipo, cantidad in secuencia:
            registrar_movimiento(
                material_id=self.material.pk,
                tipo=tipo,
                cantidad=cantidad,
                motivo="Secuencia",
                usuario=self.usuario,
            )

        self.material.refresh_from_db()
        resultado = verificar_ledger(self.material)

        self.assertTrue(resultado.consistente, resultado.inconsistencias)
        self.assertEqual(resultado.movimientos, len(secuencia))
        self.assertEqual(resultado.stock_calculado, Decimal("5.125"))
        self.assertEqual(self.material.stock_actual, Decimal("5.125"))

    def test_detecta_stock_modificado_por_fuera(self):
        registrar_movimiento(
            material_id=self.material.pk,
            tipo=MovimientoInventario.TIPO_ENTRADA,
            cantidad="5",
            motivo="Entrada",
            usuario=self.usuario,
        )
        Material.objects.filter(pk=self.material.pk).update(stock_actual=Decimal("99"))
        self.material.refresh_from_db()

        resultado = verificar_ledger(self.material)

        self.assertFalse(resultado.consistente)
        self.assertEqual(resultado.stock_calculado, Decimal("25"))

    def test_sin_movimientos_usa_stock_inicial(self):
        resultado = verificar_ledger(self.material)
        self.assertTrue(resultado.consistente)
        self.assertEqual(resultado.movimientos, 0)
