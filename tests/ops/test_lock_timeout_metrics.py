from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from app.concierge.core.errors import setup_exception_handlers
from app.concierge.core.metrics import metrics
from tests.factories import make_shipment, receive_payload


def test_lock_timeout_increments_metric():
    metrics.reset()
    app = FastAPI()
    setup_exception_handlers(app)

    @app.get("/lock-timeout")
    def lock_timeout():
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.get("/lock-timeout")

    assert response.status_code == 409
    assert response.json()["code"] == "LOCK_TIMEOUT"

    content = metrics.render().content.decode("utf-8")
    if metrics.enabled:
        assert "lock_wait_timeout_total 1.0" in content
    else:
        assert "metrics_disabled" in content


def test_metrics_endpoint_exposes_domain_counters(client, db_session):
    metrics.reset()
    make_shipment(db_session)
    client.put("/api/public/shipments/ABCDEF", json=receive_payload())
    client.put("/api/public/shipments/ABCDEF", json=receive_payload())

    response = client.get("/api/ops/metrics")

    assert response.status_code == 200
    if metrics.enabled:
        assert "shipment_receipts_total 1.0" in response.text
        assert 'shipment_status_conflicts_total{actor="public_receive"} 1.0' in response.text
        assert "http_requests_total" in response.text
