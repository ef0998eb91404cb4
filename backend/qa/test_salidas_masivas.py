"""
Tests de Salida Masiva y su reversión

Cubre:
- N afilados pendientes -> N fechas de salida y sierras Disponibles
- Escenario A100 con dos afilados pendientes
- Lote vacío, afilado cerrado, sierra no elegible o de otra sucursal: aborta sin escribir
- Falla a mitad de la escritura: rollback completo
- Reversión: fecha_salida vuelve a NULL, la sierra no se toca (modo por defecto)
- Reversión exacta: la sierra vuelve al estado registrado
"""
import pytest
from datetime import date

from sqlalchemy.dialects import postgresql

from gestor_afilado.application.services_masivas import (
    SalidaMasivaService, LoteVacioError, AfiladoNoPendienteError, EstadoNoElegibleError,
    MasivaNoEncontradaError, ReferenciaInvalidaError, FiltrosMasivas, resumen_masivas,
)
from gestor_afilado.domain.enums import EstadoSierraId
from gestor_afilado.domain.models_sierras import Sierra, Afilado
from gestor_afilado.domain.models_masivas import SalidaMasiva, SalidaMasivaAfilado

FECHA = date(2025, 6, 1)


def _service(uow, exacta=False):
    return SalidaMasivaService(uow, reversion_exacta=exacta)


class TestRegistrarSalida:

    def test_n_afilados_quedan_cerrados_y_sierras_disponibles(self, db, uow, catalogo, crear_sierra, crear_afilado):
        s1 = crear_sierra("S1", EstadoSierraId.EN_AFILADO)
        s2 = crear_sierra("S2", EstadoSierraId.LISTA_PARA_RETIRO)
        afilados = [crear_afilado(s1), crear_afilado(s1), crear_afilado(s2)]

        salida = _service(uow).registrar([a.id for a in afilados], FECHA, catalogo.sucursal.id, "Retiro semanal", catalogo.admin.id)
        uow.commit()

        assert db.query(SalidaMasivaAfilado).filter_by(salida_masiva_id=salida.id).count() == 3
        for a in afilados:
            assert db.get(Afilado, a.id).fecha_salida == FECHA
        assert db.get(Sierra, s1.id).estado_id == EstadoSierraId.DISPONIBLE
        assert db.get(Sierra, s2.id).estado_id == EstadoSierraId.DISPONIBLE
        assert salida.usuario_id == catalogo.admin.id
        assert salida.observaciones == "Retiro semanal"

    def test_escenario_a100_dos_pendientes(self, db, uow, catalogo, crear_sierra, crear_afilado):
        a100 = crear_sierra("A100", EstadoSierraId.LISTA_PARA_RETIRO)
        r1 = crear_afilado(a100, date(2025, 5, 2))
        r2 = crear_afilado(a100, date(2025, 5, 15))

        _service(uow).registrar([r1.id, r2.id], date(2025, 6, 1), catalogo.sucursal.id)
        uow.commit()

        assert db.get(Afilado, r1.id).fecha_salida == date(2025, 6, 1)
        assert db.get(Afilado, r2.id).fecha_salida == date(2025, 6, 1)
        assert db.get(Sierra, a100.id).estado_id == 1

    def test_guarda_estado_previo_de_la_sierra(self, db, uow, catalogo, crear_sierra, crear_afilado):
        sierra = crear_sierra("S1", EstadoSierraId.LISTA_PARA_RETIRO)
        afilado = crear_afilado(sierra)
        salida = _service(uow).registrar([afilado.id], FECHA, catalogo.sucursal.id)
        uow.commit()
        detalle = db.query(SalidaMasivaAfilado).filter_by(salida_masiva_id=salida.id).one()
        assert detalle.estado_id_anterior == EstadoSierraId.LISTA_PARA_RETIRO

    def test_ids_repetidos_se_colapsan(self, db, uow, catalogo, crear_sierra, crear_afilado):
        afilado = crear_afilado(crear_sierra("S1", EstadoSierraId.EN_AFILADO))
        salida = _service(uow).registrar([afilado.id, afilado.id], FECHA, catalogo.sucursal.id)
        uow.commit()
        assert db.query(SalidaMasivaAfilado).filter_by(salida_masiva_id=salida.id).count() == 1

    def test_lote_vacio(self, db, uow, catalogo):
        with pytest.raises(LoteVacioError) as exc:
            _service(uow).registrar([], FECHA, catalogo.sucursal.id)
        assert exc.value.codigo == "EMPTY_BATCH"
        assert db.query(SalidaMasiva).count() == 0

    def test_sucursal_inexistente(self, uow, crear_sierra, crear_afilado):
        afilado = crear_afilado(crear_sierra("S1", EstadoSierraId.EN_AFILADO))
        with pytest.raises(ReferenciaInvalidaError):
            _service(uow).registrar([afilado.id], FECHA, 9999)

    def test_afilado_inexistente_aborta(self, db, uow, catalogo, crear_sierra, crear_afilado):
        afilado = crear_afilado(crear_sierra("S1", EstadoSierraId.EN_AFILADO))
        with pytest.raises(MasivaNoEncontradaError) as exc:
            _service(uow).registrar([afilado.id, 4242], FECHA, catalogo.sucursal.id)
        assert exc.value.ids == [4242]
        uow.rollback()
        assert db.get(Afilado, afilado.id).fecha_salida is None

    def test_sierra_de_otra_sucursal_aborta(self, db, uow, catalogo, crear_sierra, crear_afilado):
        propia = crear_afilado(crear_sierra("S1", EstadoSierraId.EN_AFILADO))
        ajena_sierra = crear_sierra("S2", EstadoSierraId.EN_AFILADO, sucursal=catalogo.otra_sucursal)
        ajena = crear_afilado(ajena_sierra)

        with pytest.raises(ReferenciaInvalidaError) as exc:
            _service(uow).registrar([propia.id, ajena.id], FECHA, catalogo.sucursal.id)
        uow.rollback()

        assert exc.value.codigo == "INVALID_REFERENCE"
        assert exc.value.ids == [ajena_sierra.id]
        assert db.query(SalidaMasiva).count() == 0
        assert db.get(Afilado, ajena.id).fecha_salida is None
        assert db.get(Sierra, ajena_sierra.id).estado_id == EstadoSierraId.EN_AFILADO

    def test_bloqueo_de_afilados_valido_en_postgresql(self, uow):
        sql = str(
            uow.afilados.query_by_ids([1, 2], for_update=True)
            .statement.compile(dialect=postgresql.dialect())
        )
        assert "FOR UPDATE OF afilados" in sql
        sin_bloqueo = str(uow.afilados.query_by_ids([1]).statement.compile(dialect=postgresql.dialect()))
        assert "FOR UPDATE" not in sin_bloqueo

    def test_afilado_ya_cerrado_aborta_todo_el_lote(self, db, uow, catalogo, crear_sierra, crear_afilado):
        sierra = crear_sierra("S1", EstadoSierraId.EN_AFILADO)
        pendiente = crear_afilado(sierra)
        cerrado = crear_afilado(sierra, fecha_salida=date(2025, 5, 30))

        with pytest.raises(AfiladoNoPendienteError) as exc:
            _service(uow).registrar([pendiente.id, cerrado.id], FECHA, catalogo.sucursal.id)
        uow.rollback()

        assert exc.value.codigo == "NOT_PENDING"
        assert exc.value.ids == [cerrado.id]
        assert db.query(SalidaMasiva).count() == 0
        assert db.get(Afilado, pendiente.id).fecha_salida is None
        assert db.get(Sierra, sierra.id).estado_id == EstadoSierraId.EN_AFILADO

    def test_sierra_no_elegible_aborta_todo_el_lote(self, db, uow, catalogo, crear_sierra, crear_afilado):
        ok = crear_afilado(crear_sierra("S1", EstadoSierraId.EN_AFILADO))
        # Estado cambiado entre el escaneo y la confirmación
        otra = crear_sierra("S2", EstadoSierraId.EN_AFILADO)
        mala = crear_afilado(otra)
        otra.estado_id = EstadoSierraId.DISPONIBLE.value
        db.commit()

        with pytest.raises(EstadoNoElegibleError) as exc:
            _service(uow).registrar([ok.id, mala.id], FECHA, catalogo.sucursal.id)
        uow.rollback()

        assert exc.value.codigo == "INELIGIBLE_STATE"
        assert db.query(SalidaMasiva).count() == 0
        assert db.get(Afilado, ok.id).fecha_salida is None

    def test_falla_a_mitad_de_escritura_revierte_todo(self, db, uow, catalogo, crear_sierra, crear_afilado, monkeypatch):
        sierra = crear_sierra("S1", EstadoSierraId.EN_AFILADO)
        a1, a2 = crear_afilado(sierra), crear_afilado(sierra)

        llamadas = []
        original = uow.salidas.add_detalle

        def add_detalle_que_falla(detalle):
            llamadas.append(detalle)
            if len(llamadas) == 2:
                raise RuntimeError("conexión perdida")
            return original(detalle)

        monkeypatch.setattr(uow.salidas, "add_detalle", add_detalle_que_falla)

        with pytest.raises(RuntimeError):
            with uow.transaction():
                _service(uow).registrar([a1.id, a2.id], FECHA, catalogo.sucursal.id)

        assert db.query(SalidaMasiva).count() == 0
        assert db.query(SalidaMasivaAfilado).count() == 0
        assert db.get(Afilado, a1.id).fecha_salida is None
        assert db.get(Afilado, a2.id).fecha_salida is None
        assert db.get(Sierra, sierra.id).estado_id == EstadoSierraId.EN_AFILADO


class TestEliminarSalida:

    def test_reversion_reabre_afilados_y_no_toca_la_sierra(self, db, uow, catalogo, crear_sierra, crear_afilado):
        sierra = crear_sierra("R1", EstadoSierraId.LISTA_PARA_RETIRO)
        afilado = crear_afilado(sierra)
        salida = _service(uow).registrar([afilado.id], FECHA, catalogo.sucursal.id)
        uow.commit()

        reabiertos = _service(uow).eliminar(salida.id)
        uow.commit()

        assert reabiertos == 1
        assert db.get(Afilado, afilado.id).fecha_salida is None
        assert db.query(SalidaMasiva).count() == 0
        assert db.query(SalidaMasivaAfilado).count() == 0
        # Modo por defecto: la sierra queda como la dejó la salida
        assert db.get(Sierra, sierra.id).estado_id == EstadoSierraId.DISPONIBLE

    def test_reversion_exacta_restaura_estado_previo(self, db, uow, catalogo, crear_sierra, crear_afilado):
        sierra = crear_sierra("R1", EstadoSierraId.LISTA_PARA_RETIRO)
        afilado = crear_afilado(sierra)
        salida = _service(uow, exacta=True).registrar([afilado.id], FECHA, catalogo.sucursal.id)
        uow.commit()

        _service(uow, exacta=True).eliminar(salida.id)
        uow.commit()

        assert db.get(Sierra, sierra.id).estado_id == EstadoSierraId.LISTA_PARA_RETIRO
        assert db.get(Afilado, afilado.id).fecha_salida is None

    def test_reversion_exacta_no_pisa_un_estado_posterior(self, db, uow, catalogo, crear_sierra, crear_afilado):
        sierra = crear_sierra("R1", EstadoSierraId.EN_AFILADO)
        afilado = crear_afilado(sierra)
        salida = _service(uow, exacta=True).registrar([afilado.id], FECHA, catalogo.sucursal.id)
        uow.commit()
        db.get(Sierra, sierra.id).activo = False
        db.get(Sierra, sierra.id).estado_id = EstadoSierraId.FUERA_DE_SERVICIO.value
        db.commit()

        _service(uow, exacta=True).eliminar(salida.id)
        uow.commit()

        assert db.get(Sierra, sierra.id).estado_id == EstadoSierraId.FUERA_DE_SERVICIO

    def test_eliminar_dos_veces(self, uow, catalogo, crear_sierra, crear_afilado):
        afilado = crear_afilado(crear_sierra("R1", EstadoSierraId.EN_AFILADO))
        salida = _service(uow).registrar([afilado.id], FECHA, catalogo.sucursal.id)
        uow.commit()
        salida_id = salida.id

        _service(uow).eliminar(salida_id)
        uow.commit()
        with pytest.raises(MasivaNoEncontradaError) as exc:
            _service(uow).eliminar(salida_id)
        assert exc.value.codigo == "NOT_FOUND"


class TestConsultasSalida:

    def test_obtener_detalle_tipado(self, uow, catalogo, crear_sierra, crear_afilado):
        sierra = crear_sierra("Q1", EstadoSierraId.EN_AFILADO)
        afilado = crear_afilado(sierra, date(2025, 5, 5))
        salida = _service(uow).registrar([afilado.id], FECHA, catalogo.sucursal.id)
        uow.commit()

        completa = _service(uow).obtener(salida.id)

        assert completa.sucursal == "Planta Temuco"
        assert len(completa.detalles) == 1
        d = completa.detalles[0]
        assert d.codigo_barras == "Q1"
        assert d.tipo_afilado == "Afilado estándar"
        assert d.fecha_afilado == date(2025, 5, 5)
        assert d.fecha_salida == FECHA
        assert d.estado_id_anterior == EstadoSierraId.EN_AFILADO

    def test_listar_filtra_por_empresa_y_fecha(self, uow, catalogo, crear_sierra, crear_afilado):
        a1 = crear_afilado(crear_sierra("L1", EstadoSierraId.EN_AFILADO))
        a2 = crear_afilado(crear_sierra("L2", EstadoSierraId.EN_AFILADO, sucursal=catalogo.otra_sucursal))
        _service(uow).registrar([a1.id], date(2025, 6, 1), catalogo.sucursal.id)
        _service(uow).registrar([a2.id], date(2025, 7, 1), catalogo.otra_sucursal.id)
        uow.commit()

        items, total = _service(uow).listar(FiltrosMasivas(empresa_id=catalogo.empresa.id))
        assert total == 1 and items[0].sucursal_id == catalogo.sucursal.id

        items, total = _service(uow).listar(FiltrosMasivas(fecha_desde=date(2025, 6, 15)))
        assert total == 1 and items[0].fecha_salida == date(2025, 7, 1)

    def test_resumen(self, uow, catalogo, crear_sierra, crear_afilado):
        sierra = crear_sierra("D1", EstadoSierraId.EN_AFILADO)
        a1, a2 = crear_afilado(sierra), crear_afilado(sierra)
        _service(uow).registrar([a1.id, a2.id], FECHA, catalogo.sucursal.id)
        uow.commit()

        resumen = resumen_masivas(uow)
        assert resumen.total_salidas == 1
        assert resumen.afilados_en_salidas == 2
        assert resumen.total_bajas == 0
        assert resumen_masivas(uow, empresa_id=catalogo.otra_empresa.id).total_salidas == 0
