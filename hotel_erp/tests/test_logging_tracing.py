import logging

import pytest
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider

from hotel_erp.common import ServiceSettings, build_app, configure_logging
from hotel_erp.common.logging import TraceContextFilter
from hotel_erp.common.tracing import _INSTRUMENTED_APPS, configure_tracing


@pytest.mark.usefixtures("caplog")
class TestTracingInstrumentation:
    def test_tracing_sets_provider_once(self, caplog: pytest.LogCaptureFixture) -> None:
        settings = ServiceSettings(
            enable_tracing=True,
            enable_metrics=False,
            app_name="Ledger Tracing Test",
        )
        configure_logging(settings)
        caplog.set_level(logging.WARNING)
        before = len(_INSTRUMENTED_APPS)
        app = build_app(settings)
        after_first = len(_INSTRUMENTED_APPS)
        assert after_first == before + 1
        configure_tracing(app, settings)
        assert len(_INSTRUMENTED_APPS) == after_first
        assert isinstance(trace.get_tracer_provider(), TracerProvider)

    def test_disabled_tracing_leaves_app_uninstrumented(self) -> None:
        settings = ServiceSettings(enable_tracing=False, enable_metrics=False)
        before = len(_INSTRUMENTED_APPS)
        build_app(settings)
        assert len(_INSTRUMENTED_APPS) == before

    def test_logging_injects_trace_identifiers(self, caplog: pytest.LogCaptureFixture) -> None:
        settings = ServiceSettings(
            enable_tracing=True,
            enable_metrics=False,
            app_name="Ledger Logging Test",
        )
        configure_logging(settings)
        build_app(settings)
        caplog.clear()
        tracer = trace.get_tracer(__name__)
        logger = logging.getLogger("ledger-trace-test")
        with caplog.at_level(logging.INFO):
            logger.info("outside span")
            outside_record = next(record for record in caplog.records if record.message == "outside span")
            assert getattr(outside_record, "trace_id", "-") == "-"
            assert getattr(outside_record, "span_id", "-") == "-"
            with tracer.start_as_current_span("post-transaction"):
                logger.info("inside span")
        inside_record = next(record for record in caplog.records if record.message == "inside span")
        trace_id = getattr(inside_record, "trace_id", "-")
        span_id = getattr(inside_record, "span_id", "-")
        assert len(trace_id) == 32
        assert len(span_id) == 16


def test_reconfiguring_logging_keeps_a_single_context_filter() -> None:
    configure_logging(ServiceSettings(app_name="First Service", enable_metrics=False))
    configure_logging(ServiceSettings(app_name="Second Service", enable_metrics=False))

    root_filters = [f for f in logging.getLogger().filters if isinstance(f, TraceContextFilter)]
    assert len(root_filters) == 1
    assert root_filters[0].service_name == "Second Service"

    record = logging.LogRecord("ledger", logging.INFO, __file__, 1, "posted", None, None)
    assert root_filters[0].filter(record) is True
    assert record.service == "Second Service"
