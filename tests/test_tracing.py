import pytest


def load_app(**overrides):
    from app import create_app
    from app.config import TestingConfig
    return create_app(type("TracingTestConfig", (TestingConfig,), overrides))


@pytest.fixture()
def test_client():
    return load_app().test_client()


def test_traceparent_header(test_client):
    resp = test_client.get("/__ok")
    assert resp.status_code == 200
    assert "traceparent" in resp.headers


def test_span_exporter_selection():
    from opentelemetry.sdk.trace.export import ConsoleSpanExporter
    from app.telemetry import _span_exporter

    class Stub:
        def __init__(self, kind):
            self.config = {"OTEL_EXPORTER": kind}

    assert _span_exporter(Stub("none")) is None
    assert isinstance(_span_exporter(Stub("console")), ConsoleSpanExporter)
