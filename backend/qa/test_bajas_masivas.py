"""
Tests de Baja Masiva y su reversión
"""
import pytest
from datetime import date

from gestor_afilado.application.services_masivas import (
    BajaMasivaService, LoteVacioError, SierraInactivaError, MasivaNoEncontradaError,
    FiltrosMasivas, resumen_masivas,
)
from gestor_afilado.domain.enums import EstadoSierraId
from gestor_afilado.domain.models_sierras import Sierra
from gestor_afilado.domain.models_masivas import BajaMasiva, BajaMasivaSierra

FECHA = date(2025, 6, 10)


def _service(uow, exacta=False):
    return BajaMasivaService(uow, reversion_exacta=exacta)


def test_baja_desactiva_todas_las_sierras(db, uow, catalogo, crear_sierra):
    sierras = [
        crear_sierra("B1"),
        crear_sierra("B2", EstadoSierraId.EN_AFILADO),
        crear_sierra("B3", EstadoSierraId.LISTA_PARA_RETIRO),
    ]

    baja = _service(uow).registrar([s.id for s in sierras], FECHA, "Fin de vida útil", catalogo.gerente.id)
    uow.commit()

    detalles = db.query(BajaMasivaSierra).filter_by(baja_masiva_id=baja.id).all()
    assert len(detalles) == 3
    assert all(d.estado_anterior is True for d in detalles)
    for s in sierras:
        sierra = db.get(Sierra, s.id)
        assert sierra.activo is False
        assert sierra.estado_id == EstadoSierraId.FUERA_DE_SERVICIO


def test_escenario_b200(db, uow, catalogo, crear_sierra):
    b200 = crear_sierra("B200", EstadoSierraId.DISPONIBLE)

    baja = _service(uow).registrar([b200.id], FECHA)
    uow.commit()
    sierra = db.get(Sierra, b200.id)
    assert (sierra.activo, sierra.estado_id) == (False, 4)

    _service(uow).eliminar(baja.id)
    uow.commit()
    sierra = db.get(Sierra, b200.id)
    assert (sierra.activo, sierra.estado_id) == (True, 1)
    assert db.query(BajaMasiva).count() == 0
    assert db.query(BajaMasivaSierra).count() == 0


def test_lote_vacio(db, uow):
    with pytest.raises(LoteVacioError):
        _service(uow).registrar([], FECHA)
    assert db.query(BajaMasiva).count() == 0


def test_sierra_ya_inactiva_aborta_todo_el_lote(db, uow, crear_sierra):
    activa = crear_sierra("B1")
    inactiva = crear_sierra("B2", EstadoSierraId.FUERA_DE_SERVICIO, activo=False)

    with pytest.raises(SierraInactivaError) as exc:
        _service(uow).registrar([activa.id, inactiva.id], FECHA)
    uow.rollback()

    assert exc.value.codigo == "ALREADY_INACTIVE"
    assert exc.value.ids == [inactiva.id]
    assert db.query(BajaMasiva).count() == 0
    assert db.get(Sierra, activa.id).activo is True
    assert db.get(Sierra, activa.id).estado_id == EstadoSierraId.DISPONIBLE


def test_sierra_inexistente_aborta(db, uow, crear_sierra):
    activa = crear_sierra("B1")
    with pytest.raises(MasivaNoEncontradaError) as exc:
        _service(uow).registrar([activa.id, 777], FECHA)
    uow.rollback()
    assert exc.value.ids == [777]
    assert db.get(Sierra, activa.id).activo is True


def test_ids_repetidos_se_colapsan(db, uow, crear_sierra):
    sierra = crear_sierra("B1")
    baja = _service(uow).registrar([sierra.id, sierra.id, sierra.id], FECHA)
    uow.commit()
    assert db.query(BajaMasivaSierra).filter_by(baja_masiva_id=baja.id).count() == 1


def test_reversion_exacta_restaura_estado_previo(db, uow, crear_sierra):
    sierra = crear_sierra("B1", EstadoSierraId.LISTA_PARA_RETIRO)
    baja = _service(uow, exacta=True).registrar([sierra.id], FECHA)
    uow.commit()

    restauradas = _service(uow, exacta=True).eliminar(baja.id)
    uow.commit()

    assert restauradas == 1
    sierra = db.get(Sierra, sierra.id)
    assert sierra.activo is True
    assert sierra.estado_id == EstadoSierraId.LISTA_PARA_RETIRO


def test_reversion_por_defecto_deja_disponible(db, uow, crear_sierra):
    sierra = crear_sierra("B1", EstadoSierraId.LISTA_PARA_RETIRO)
    baja = _service(uow).registrar([sierra.id], FECHA)
    uow.commit()

    _service(uow).eliminar(baja.id)
    uow.commit()

    assert db.get(Sierra, sierra.id).estado_id == EstadoSierraId.DISPONIBLE


def test_eliminar_inexistente(uow):
    with pytest.raises(MasivaNoEncontradaError):
        _service(uow).eliminar(12345)


def test_obtener_y_listar(uow, catalogo, crear_sierra):
    propia = crear_sierra("P1")
    ajena = crear_sierra("X1", sucursal=catalogo.otra_sucursal)
    b1 = _service(uow).registrar([propia.id], date(2025, 6, 1))
    _service(uow).registrar([ajena.id], date(2025, 7, 1))
    uow.commit()

    completa = _service(uow).obtener(b1.id)
    assert [d.codigo_barras for d in completa.detalles] == ["P1"]
    assert completa.detalles[0].sucursal == "Planta Temuco"
    assert completa.detalles[0].tipo_sierra == "Sierra cinta"
    assert completa.detalles[0].activo_actual is False
    assert completa.detalles[0].estado_id_anterior == EstadoSierraId.DISPONIBLE

    items, total = _service(uow).listar(FiltrosMasivas(empresa_id=catalogo.empresa.id))
    assert total == 1 and items[0].id == b1.id

    items, total = _service(uow).listar(FiltrosMasivas(sucursal_id=catalogo.otra_sucursal.id))
    assert total == 1 and items[0].fecha_baja == date(2025, 7, 1)

    items, total = _service(uow).listar(FiltrosMasivas(fecha_hasta=date(2025, 6, 30)))
    assert total == 1 and items[0].id == b1.id

    resumen = resumen_masivas(uow, empresa_id=catalogo.empresa.id)
    assert resumen.total_bajas == 1
    assert resumen.sierras_en_bajas == 1
