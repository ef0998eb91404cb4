"""
Tests del escaneo de códigos para salidas y bajas masivas

Cubre:
- Unión sin duplicados al escanear una sierra elegible
- Escaneo repetido -> DUPLICADO, lote sin cambios
- Rechazos: código vacío, inexistente, estado no elegible, sin pendientes, inactiva
- Ningún escaneo escribe en la BD
"""
from datetime import date

from gestor_afilado.application.services_escaneo import (
    ItemLoteSalida, ItemLoteBaja, ResultadoEscaneo,
    escanear_para_salida, escanear_para_baja, quitar_de_lote,
)
from gestor_afilado.domain.enums import EstadoSierraId
from gestor_afilado.domain.models_sierras import Afilado


class TestEscaneoSalida:

    def test_agrega_todos_los_pendientes_de_la_sierra(self, uow, crear_sierra, crear_afilado):
        sierra = crear_sierra("A100", EstadoSierraId.EN_AFILADO)
        a1 = crear_afilado(sierra, date(2025, 5, 1))
        a2 = crear_afilado(sierra, date(2025, 5, 10))
        crear_afilado(sierra, date(2025, 4, 1), fecha_salida=date(2025, 4, 5))

        r = escanear_para_salida(uow, "A100", [])

        assert r.resultado == ResultadoEscaneo.AGREGADO
        assert sorted(i.afilado_id for i in r.lote) == sorted([a1.id, a2.id])
        assert all(isinstance(i, ItemLoteSalida) for i in r.lote)
        assert all(i.codigo_barras == "A100" for i in r.lote)

    def test_union_con_lote_previo(self, uow, crear_sierra, crear_afilado):
        s1 = crear_sierra("A100", EstadoSierraId.EN_AFILADO)
        s2 = crear_sierra("A200", EstadoSierraId.LISTA_PARA_RETIRO)
        crear_afilado(s1)
        a2 = crear_afilado(s2)

        lote = escanear_para_salida(uow, "A100", []).lote
        r = escanear_para_salida(uow, "A200", lote)

        assert r.aceptado
        assert r.lote[:len(lote)] == lote
        assert [i.afilado_id for i in r.lote[len(lote):]] == [a2.id]
        ids = [i.afilado_id for i in r.lote]
        assert len(ids) == len(set(ids))

    def test_codigo_repetido_no_modifica_lote(self, uow, crear_sierra, crear_afilado):
        sierra = crear_sierra("A100", EstadoSierraId.EN_AFILADO)
        crear_afilado(sierra)
        lote = escanear_para_salida(uow, "A100", []).lote

        r = escanear_para_salida(uow, "A100", lote)

        assert r.resultado == ResultadoEscaneo.DUPLICADO
        assert r.lote == lote

    def test_codigo_con_espacios_se_normaliza(self, uow, crear_sierra, crear_afilado):
        sierra = crear_sierra("A100", EstadoSierraId.EN_AFILADO)
        crear_afilado(sierra)
        lote = escanear_para_salida(uow, "  A100\n", []).lote
        assert len(lote) == 1
        assert escanear_para_salida(uow, "A100 ", lote).resultado == ResultadoEscaneo.DUPLICADO

    def test_codigo_vacio(self, uow):
        r = escanear_para_salida(uow, "   ", [])
        assert r.resultado == ResultadoEscaneo.CODIGO_VACIO
        assert r.lote == []

    def test_sierra_inexistente(self, uow, catalogo):
        r = escanear_para_salida(uow, "NO-EXISTE", [])
        assert r.resultado == ResultadoEscaneo.NOT_FOUND
        assert r.lote == []

    def test_sierra_disponible_no_es_elegible(self, uow, crear_sierra, crear_afilado):
        sierra = crear_sierra("A100", EstadoSierraId.DISPONIBLE)
        crear_afilado(sierra)
        r = escanear_para_salida(uow, "A100", [])
        assert r.resultado == ResultadoEscaneo.INELIGIBLE_STATE
        assert "Disponible" in r.mensaje

    def test_sierra_sin_afilados_pendientes(self, uow, crear_sierra, crear_afilado):
        sierra = crear_sierra("A100", EstadoSierraId.LISTA_PARA_RETIRO)
        crear_afilado(sierra, fecha_salida=date(2025, 5, 30))
        r = escanear_para_salida(uow, "A100", [])
        assert r.resultado == ResultadoEscaneo.NO_PENDING_RECORDS
        assert r.lote == []

    def test_escaneo_no_persiste_nada(self, db, uow, crear_sierra, crear_afilado):
        sierra = crear_sierra("A100", EstadoSierraId.EN_AFILADO)
        afilado = crear_afilado(sierra)
        escanear_para_salida(uow, "A100", [])
        assert not db.dirty and not db.new
        assert db.get(Afilado, afilado.id).fecha_salida is None


class TestEscaneoBaja:

    def test_agrega_sierra_activa(self, uow, crear_sierra):
        sierra = crear_sierra("B200", EstadoSierraId.EN_AFILADO)
        r = escanear_para_baja(uow, "B200", [])
        assert r.resultado == ResultadoEscaneo.AGREGADO
        assert r.lote == [ItemLoteBaja(
            sierra_id=sierra.id, codigo_barras="B200", estado_id=2,
            sucursal="Planta Temuco", tipo_sierra="Sierra cinta",
        )]

    def test_sierra_inactiva(self, uow, crear_sierra):
        crear_sierra("B200", EstadoSierraId.FUERA_DE_SERVICIO, activo=False)
        r = escanear_para_baja(uow, "B200", [])
        assert r.resultado == ResultadoEscaneo.ALREADY_INACTIVE
        assert r.lote == []

    def test_duplicado(self, uow, crear_sierra):
        crear_sierra("B200")
        lote = escanear_para_baja(uow, "B200", []).lote
        r = escanear_para_baja(uow, "B200", lote)
        assert r.resultado == ResultadoEscaneo.DUPLICADO
        assert r.lote == lote

    def test_inexistente(self, uow, catalogo):
        assert escanear_para_baja(uow, "ZZZ", []).resultado == ResultadoEscaneo.NOT_FOUND


def test_quitar_de_lote():
    lote = [
        ItemLoteSalida(afilado_id=1, sierra_id=10, codigo_barras="A", fecha_afilado=date(2025, 1, 1), estado_id=2),
        ItemLoteSalida(afilado_id=2, sierra_id=10, codigo_barras="A", fecha_afilado=date(2025, 1, 2), estado_id=2),
    ]
    assert [i.afilado_id for i in quitar_de_lote(lote, 1)] == [2]
    assert quitar_de_lote(lote, 99) == lote
