"""
Tests de API - Salidas y Bajas Masivas

Flujo completo por HTTP: escaneo -> confirmación -> consulta -> reversión.
"""
from datetime import date

from gestor_afilado.application.services_masivas import BajaMasivaService
from gestor_afilado.domain.enums import EstadoSierraId
from gestor_afilado.domain.models_sierras import Sierra, Afilado


class TestSalidasMasivasAPI:

    def test_flujo_completo(self, db, client_auth, catalogo, crear_sierra, crear_afilado):
        a100 = crear_sierra("A100", EstadoSierraId.LISTA_PARA_RETIRO)
        r1 = crear_afilado(a100)
        r2 = crear_afilado(a100)

        r = client_auth.post("/salidas-masivas/escanear", json={"codigo_barras": "A100", "lote": []})
        assert r.status_code == 200
        escaneo = r.json()
        assert escaneo["resultado"] == "AGREGADO"
        assert {i["afilado_id"] for i in escaneo["lote"]} == {r1.id, r2.id}

        # El mismo código otra vez: rechazado, lote intacto
        r = client_auth.post("/salidas-masivas/escanear", json={"codigo_barras": "A100", "lote": escaneo["lote"]})
        assert r.json()["resultado"] == "DUPLICADO"
        assert r.json()["lote"] == escaneo["lote"]

        r = client_auth.post("/salidas-masivas", json={
            "afilado_ids": [i["afilado_id"] for i in escaneo["lote"]],
            "fecha_salida": "2025-06-01",
            "sucursal_id": catalogo.sucursal.id,
            "observaciones": "Despacho camión 2",
        })
        assert r.status_code == 200
        salida = r.json()
        assert salida["cantidad_afilados"] == 2
        assert salida["sucursal"] == "Planta Temuco"
        assert db.get(Sierra, a100.id).estado_id == EstadoSierraId.DISPONIBLE

        r = client_auth.get(f"/salidas-masivas/{salida['id']}")
        assert r.status_code == 200
        assert {d["fecha_salida"] for d in r.json()["detalles"]} == {"2025-06-01"}

        r = client_auth.get("/salidas-masivas")
        assert r.json()["total"] == 1

        r = client_auth.get(f"/salidas-masivas/{salida['id']}/pdf")
        assert r.status_code == 200
        assert r.headers["content-type"] == "application/pdf"
        assert r.content.startswith(b"%PDF")

        r = client_auth.delete(f"/salidas-masivas/{salida['id']}")
        assert r.status_code == 200
        assert r.json() == {"id": salida["id"], "afilados_reabiertos": 2}
        assert db.get(Afilado, r1.id).fecha_salida is None

        r = client_auth.delete(f"/salidas-masivas/{salida['id']}")
        assert r.status_code == 404
        assert r.json()["detail"]["codigo"] == "NOT_FOUND"

    def test_lote_vacio(self, client_auth, catalogo):
        r = client_auth.post("/salidas-masivas", json={
            "afilado_ids": [], "fecha_salida": "2025-06-01", "sucursal_id": catalogo.sucursal.id,
        })
        assert r.status_code == 400
        assert r.json()["detail"]["codigo"] == "EMPTY_BATCH"

    def test_afilado_cerrado_devuelve_409(self, db, client_auth, catalogo, crear_sierra, crear_afilado):
        sierra = crear_sierra("S1", EstadoSierraId.EN_AFILADO)
        pendiente = crear_afilado(sierra)
        cerrado = crear_afilado(sierra, fecha_salida=date(2025, 5, 25))

        r = client_auth.post("/salidas-masivas", json={
            "afilado_ids": [pendiente.id, cerrado.id],
            "fecha_salida": "2025-06-01",
            "sucursal_id": catalogo.sucursal.id,
        })
        assert r.status_code == 409
        detail = r.json()["detail"]
        assert detail["codigo"] == "NOT_PENDING"
        assert detail["ids"] == [cerrado.id]
        assert db.get(Afilado, pendiente.id).fecha_salida is None

    def test_escaneo_estado_no_elegible(self, client_auth, crear_sierra, crear_afilado):
        crear_afilado(crear_sierra("S1", EstadoSierraId.DISPONIBLE))
        r = client_auth.post("/salidas-masivas/escanear", json={"codigo_barras": "S1", "lote": []})
        assert r.status_code == 200
        assert r.json()["resultado"] == "INELIGIBLE_STATE"
        assert "Disponible" in r.json()["mensaje"]
        assert r.json()["lote"] == []

    def test_cliente_no_puede_registrar(self, client_cliente, catalogo):
        r = client_cliente.post("/salidas-masivas", json={
            "afilado_ids": [1], "fecha_salida": "2025-06-01", "sucursal_id": catalogo.sucursal.id,
        })
        assert r.status_code == 403
        r = client_cliente.post("/salidas-masivas/escanear", json={"codigo_barras": "X", "lote": []})
        assert r.status_code == 403


class TestBajasMasivasAPI:

    def test_flujo_completo_b200(self, db, client_auth, crear_sierra):
        b200 = crear_sierra("B200")

        r = client_auth.post("/bajas-masivas/escanear", json={"codigo_barras": " B200 ", "lote": []})
        assert r.json()["resultado"] == "AGREGADO"
        lote = r.json()["lote"]
        assert lote[0]["sierra_id"] == b200.id

        r = client_auth.post("/bajas-masivas", json={
            "sierra_ids": [i["sierra_id"] for i in lote],
            "fecha_baja": "2025-06-10",
        })
        assert r.status_code == 200
        baja = r.json()
        assert baja["cantidad_sierras"] == 1
        assert baja["detalles"][0]["estado_anterior"] is True
        sierra = db.get(Sierra, b200.id)
        assert (sierra.activo, sierra.estado_id) == (False, 4)

        r = client_auth.get(f"/bajas-masivas/{baja['id']}/pdf")
        assert r.content.startswith(b"%PDF")

        r = client_auth.post("/bajas-masivas/escanear", json={"codigo_barras": "B200", "lote": []})
        assert r.json()["resultado"] == "ALREADY_INACTIVE"

        r = client_auth.delete(f"/bajas-masivas/{baja['id']}")
        assert r.status_code == 200
        assert r.json()["sierras_restauradas"] == 1
        db.expire_all()
        sierra = db.get(Sierra, b200.id)
        assert (sierra.activo, sierra.estado_id) == (True, 1)

    def test_sierra_inactiva_aborta(self, db, client_auth, crear_sierra):
        activa = crear_sierra("B1")
        inactiva = crear_sierra("B2", EstadoSierraId.FUERA_DE_SERVICIO, activo=False)
        r = client_auth.post("/bajas-masivas", json={
            "sierra_ids": [activa.id, inactiva.id], "fecha_baja": "2025-06-10",
        })
        assert r.status_code == 409
        assert r.json()["detail"]["codigo"] == "ALREADY_INACTIVE"
        assert db.get(Sierra, activa.id).activo is True

    def test_cliente_ve_solo_su_empresa(self, uow, client_cliente, catalogo, crear_sierra):
        propia = crear_sierra("P1")
        ajena = crear_sierra("X1", sucursal=catalogo.otra_sucursal)
        service = BajaMasivaService(uow)
        service.registrar([propia.id], date(2025, 6, 10))
        ajena_id = service.registrar([ajena.id], date(2025, 6, 11)).id
        uow.commit()

        r = client_cliente.delete(f"/bajas-masivas/{ajena_id}")
        assert r.status_code == 403

        r = client_cliente.get("/bajas-masivas")
        assert r.status_code == 200
        assert r.json()["total"] == 1
        assert r.json()["items"][0]["fecha_baja"] == "2025-06-10"

        r = client_cliente.get(f"/bajas-masivas/{ajena_id}")
        assert r.status_code == 404


class TestReportesAPI:

    def test_reporte_y_export(self, client_auth, catalogo, crear_sierra, crear_afilado):
        crear_afilado(crear_sierra("R1", EstadoSierraId.EN_AFILADO))

        r = client_auth.get("/reportes/afilados", params={"empresa_id": catalogo.empresa.id})
        assert r.status_code == 200
        assert r.json()["total"] == 1
        fila = r.json()["items"][0]
        assert fila["empresa"] == "Aserradero Los Robles"
        assert fila["codigo_sierra"] == "R1"
        assert fila["estado_sierra"] == "En proceso de afilado"

        r = client_auth.get("/reportes/afilados/export", params={"format": "csv"})
        assert r.status_code == 200
        assert r.text.splitlines()[0].startswith("empresa,sucursal")
        assert '"R1"' in r.text

        r = client_auth.get("/reportes/afilados/export")
        assert r.status_code == 200
        assert r.headers["content-type"].startswith("application/vnd.openxmlformats")

    def test_rango_invalido(self, client_auth):
        r = client_auth.get("/reportes/afilados", params={"fecha_desde": "2025-06-10", "fecha_hasta": "2025-06-01"})
        assert r.status_code == 400
        assert r.json()["detail"]["codigo"] == "INVALID_RANGE"

    def test_dashboard(self, client_auth, catalogo, crear_sierra):
        crear_sierra("D1")
        crear_sierra("D2", EstadoSierraId.EN_AFILADO)
        r = client_auth.get("/dashboard/masivas")
        assert r.status_code == 200
        data = r.json()
        assert data["total_salidas"] == 0
        assert data["sierras_por_estado"] == {"1": 1, "2": 1}
