"""
Tests de API - Health y cabeceras de seguridad
"""


def test_health_ready(client):
    """GET /health/ready debe retornar 200"""
    r = client.get("/health/ready")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_cabeceras_de_seguridad(client):
    r = client.get("/health/ready")
    assert r.headers["X-Content-Type-Options"] == "nosniff"
    assert r.headers["X-Frame-Options"] == "DENY"
