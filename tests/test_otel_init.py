import importlib

from conftest import make_settings


def test_init_tracing_does_not_raise():
    otel_setup = importlib.import_module('convo_gateway.otel_setup')
    otel_setup.init_tracing(make_settings(), service_name='convo-gateway-test', enable_logs=False)
    # If no exception, consider pass. We can't easily assert on provider without global state.
    assert True


def test_parse_pairs_skips_malformed_entries():
    otel_setup = importlib.import_module('convo_gateway.otel_setup')
    assert otel_setup._parse_pairs("a=1, b = two,broken,,c=x=y") == {"a": "1", "b": "two", "c": "x=y"}
    assert otel_setup._parse_pairs(None) == {}
