from autocrm.core.telemetry import configure_telemetry, otlp_headers


def test_otlp_headers_parsing():
    assert otlp_headers("") == {}
    assert otlp_headers("x-api-key=abc, tenant = acme,broken,=nokey") == {
        "x-api-key": "abc",
        "tenant": "acme",
    }


def test_telemetry_disabled_by_default():
    assert configure_telemetry(app=None, engine=None) is False
