"""
Tests for the driver facade.

Tests plain-text and raw operations, retry behavior as seen by callers,
transport replacement and lifecycle.
"""

import threading
import time
from concurrent.futures import ThreadPoolExecutor

import httpx
import pytest
from prometheus_client import CollectorRegistry

from httpdriver import (
    ConfigurationError,
    Driver,
    DriverClosedError,
    DriverConfig,
    DriverResponse,
    DriverState,
    TransportError,
    TransportNotAttachedError,
    build_driver,
)
from httpdriver.observability import DriverMetrics
from httpdriver.testing import MockTransport
from httpdriver.transport import PooledTransport, RetryConfig, RetryPolicy


class TestDoGet:
    """Test GET requests."""

    def test_success_returns_body(self, driver, mock_transport, sample_urls):
        mock_transport.add_response(200, "<html>sample</html>")

        body = driver.do_get(sample_urls["page"])

        assert body == "<html>sample</html>"
        assert mock_transport.call_count == 1
        request = mock_transport.get_requests()[0]
        assert request.method == "GET"
        assert str(request.url) == sample_urls["page"]

    def test_headers_sent(self, driver, mock_transport, sample_urls):
        mock_transport.add_response(200, "ok")

        driver.do_get(sample_urls["page"], headers={"X-Request-Id": "abc"})

        assert mock_transport.get_requests()[0].headers["X-Request-Id"] == "abc"

    @pytest.mark.parametrize("status", [201, 204, 301, 404, 500])
    def test_non_200_returns_empty(self, driver, mock_transport, sample_urls, status):
        mock_transport.add_response(status, "not for you")

        assert driver.do_get(sample_urls["page"]) == ""
        assert mock_transport.call_count == 1

    def test_error_status_not_retried(self, driver, mock_transport, no_sleep, sample_urls):
        mock_transport.add_response(503, "busy")

        driver.do_get(sample_urls["page"])

        assert mock_transport.call_count == 1
        assert no_sleep.calls == []

    def test_retry_then_success(self, driver, mock_transport, no_sleep, sample_urls):
        mock_transport.add_failure()
        mock_transport.add_response(200, "recovered")

        assert driver.do_get(sample_urls["page"]) == "recovered"
        assert mock_transport.call_count == 2
        assert no_sleep.calls == [1.0]

    @pytest.mark.parametrize("mode", ["connection", "timeout", "ssl", "no_response"])
    def test_persistent_failure(self, driver, mock_transport, sample_urls, mode):
        mock_transport.set_failure_mode(mode)

        with pytest.raises(TransportError):
            driver.do_get(sample_urls["page"])

        assert mock_transport.call_count == 2

    def test_configured_attempts(self, mock_transport, no_sleep, sample_urls):
        config = DriverConfig(max_retry_attempts=4, retry_interval_ms=10)
        driver = Driver(
            config=config,
            transport=mock_transport,
            retry_policy=RetryPolicy(RetryConfig.from_driver_config(config), sleep=no_sleep),
        )
        mock_transport.set_failure_mode("connection")

        with pytest.raises(TransportError):
            driver.do_get(sample_urls["page"])

        assert mock_transport.call_count == 4
        assert no_sleep.calls == [0.01, 0.01, 0.01]


class TestDoPost:
    """Test POST requests."""

    def test_form_fields(self, driver, mock_transport, sample_urls):
        mock_transport.add_response(200, "posted")

        body = driver.do_post(
            sample_urls["post"],
            [("data", "value"), ("data", "other"), ("name", "a b")],
        )

        assert body == "posted"
        request = mock_transport.get_requests()[0]
        assert request.method == "POST"
        assert request.headers["Content-Type"] == "application/x-www-form-urlencoded"
        assert request.content == b"data=value&data=other&name=a+b"

    def test_mapping_fields(self, driver, mock_transport, sample_urls):
        mock_transport.add_response(200, "posted")

        driver.do_post(sample_urls["post"], {"data": "value"})

        assert mock_transport.get_requests()[0].content == b"data=value"

    def test_created_returns_body(self, driver, mock_transport, sample_urls):
        mock_transport.add_response(201, "created")

        assert driver.do_post(sample_urls["post"], {"data": "value"}) == "created"

    def test_error_status_returns_empty(self, driver, mock_transport, sample_urls):
        mock_transport.add_response(404, "missing")

        assert driver.do_post(sample_urls["post"], {"data": "value"}) == ""
        assert mock_transport.call_count == 1

    def test_prepared_request(self, driver, mock_transport, sample_urls, xml_body):
        mock_transport.add_response(200, "<methodResponse/>")
        request = httpx.Request(
            "POST",
            sample_urls["post"],
            content=xml_body,
            headers={"Content-Type": "text/xml"},
        )

        body = driver.do_post(request)

        assert body == "<methodResponse/>"
        sent = mock_transport.get_requests()[0]
        assert sent.content == xml_body.encode()
        assert sent.headers["Content-Type"] == "text/xml"

    def test_prepared_request_retried(self, driver, mock_transport, sample_urls, xml_body):
        mock_transport.add_failure()
        mock_transport.add_response(200, "ok")
        request = httpx.Request("POST", sample_urls["post"], content=xml_body)

        assert driver.do_post(request) == "ok"
        assert [r.content for r in mock_transport.get_requests()] == [
            xml_body.encode(),
            xml_body.encode(),
        ]

    def test_prepared_request_must_be_post(self, driver, mock_transport, sample_urls):
        with pytest.raises(ValueError, match="POST"):
            driver.do_post(httpx.Request("PUT", sample_urls["post"]))

        assert mock_transport.call_count == 0

    def test_prepared_request_with_fields_rejected(self, driver, sample_urls):
        request = httpx.Request("POST", sample_urls["post"])

        with pytest.raises(ValueError):
            driver.do_post(request, {"data": "value"})

    def test_persistent_failure(self, driver, mock_transport, sample_urls):
        mock_transport.set_failure_mode("connection")

        with pytest.raises(TransportError):
            driver.do_post(sample_urls["post"], {"data": "value"})

        assert mock_transport.call_count == 2


class TestDoPostHttpResponse:
    """Test raw POST responses."""

    def test_success(self, driver, mock_transport, sample_urls):
        mock_transport.add_response(200, "fine")

        response = driver.do_post_http_response(sample_urls["post"], {"data": "value"})

        assert response == DriverResponse(status_code=200, message="fine")
        assert response.is_success

    def test_error_status_returned_literally(self, driver, mock_transport, sample_urls):
        mock_transport.add_response(502, "E")

        response = driver.do_post_http_response(sample_urls["post"], {"data": "value"})

        assert response.status_code == 502
        assert response.message == "E"
        assert response.is_success is False
        assert mock_transport.call_count == 1

    def test_persistent_failure(self, driver, mock_transport, sample_urls):
        mock_transport.set_failure_mode("timeout")

        with pytest.raises(TransportError):
            driver.do_post_http_response(sample_urls["post"])

        assert mock_transport.call_count == 2


class TestLifecycle:
    """Test transport replacement and close."""

    def test_close_twice(self, driver, mock_transport):
        driver.close()
        driver.close()

        assert driver.state == DriverState.CLOSED
        assert mock_transport.close_count == 1

    def test_close_without_transport(self):
        driver = Driver()

        driver.close()

        assert driver.state == DriverState.CLOSED

    def test_attach_detach_sequence(self, mock_transport):
        driver = Driver()

        driver.set_transport(mock_transport)
        driver.close()
        driver.set_transport(None)
        driver.close()

        assert mock_transport.close_count == 1
        assert driver.transport is None
        assert driver.state == DriverState.CLOSED

    def test_request_after_close(self, driver, mock_transport, sample_urls):
        driver.close()

        with pytest.raises(DriverClosedError):
            driver.do_get(sample_urls["page"])

        assert mock_transport.call_count == 0

    def test_request_without_transport(self, sample_urls):
        driver = Driver()

        assert driver.state == DriverState.DETACHED
        with pytest.raises(TransportNotAttachedError, match="no transport"):
            driver.do_get(sample_urls["page"])

    def test_attach_to_detached_driver(self, mock_transport, sample_urls):
        driver = Driver()
        mock_transport.add_response(200, "attached")

        driver.set_transport(mock_transport)

        assert driver.state == DriverState.BUILT
        assert driver.do_get(sample_urls["page"]) == "attached"

    def test_detach_without_close(self, driver, mock_transport):
        driver.set_transport(None)

        assert driver.state == DriverState.DETACHED
        assert mock_transport.closed

    def test_attach_after_close_rejected(self, driver):
        driver.close()

        with pytest.raises(DriverClosedError):
            driver.set_transport(MockTransport())

    def test_set_transport_closes_previous(self, driver, mock_transport, sample_urls):
        replacement = MockTransport()
        replacement.add_response(200, "from replacement")

        driver.set_transport(replacement)

        assert mock_transport.closed
        assert driver.do_get(sample_urls["page"]) == "from replacement"
        assert mock_transport.call_count == 0

    def test_set_same_transport(self, driver, mock_transport):
        driver.set_transport(mock_transport)

        assert mock_transport.close_count == 0

    def test_context_manager(self, mock_transport):
        with Driver(transport=mock_transport) as driver:
            assert driver.state == DriverState.BUILT

        assert driver.state == DriverState.CLOSED
        assert mock_transport.closed


class TestBuildDriver:
    """Test driver construction from configuration."""

    def test_defaults(self):
        driver = build_driver()
        try:
            assert isinstance(driver.transport, PooledTransport)
            assert driver.transport.config.max_connections_per_route == 20
            assert driver.transport.config.max_total_connections == 30
        finally:
            driver.close()

        assert driver.transport is None

    def test_with_certificates(self, cert_files):
        config = DriverConfig(
            truststore_path=str(cert_files.truststore_p12),
            truststore_password=cert_files.truststore_password,
            cert_path=str(cert_files.cert),
            key_path=str(cert_files.key),
            max_pool_per_route=5,
            max_pool_total=10,
        )

        with build_driver(config) as driver:
            assert driver.transport.config.max_connections_per_route == 5
            assert driver.config is config

    def test_jks_truststore(self, cert_files):
        config = DriverConfig(
            truststore_path=str(cert_files.truststore_jks),
            truststore_password=cert_files.truststore_password,
        )

        with build_driver(config) as driver:
            assert driver.state == DriverState.BUILT

    @pytest.mark.parametrize("name", ["", "   "])
    def test_blank_algorithm(self, name):
        with pytest.raises(ConfigurationError, match="Unsupported TLS algorithm"):
            build_driver(DriverConfig(tls_algorithm=name))

    def test_unknown_algorithm(self):
        with pytest.raises(ConfigurationError, match="Unsupported TLS algorithm"):
            build_driver(DriverConfig(tls_algorithm="SSLv3"))

    def test_missing_truststore(self, tmp_path):
        config = DriverConfig(truststore_path=str(tmp_path / "nope.pem"))

        with pytest.raises(ConfigurationError):
            build_driver(config)

    def test_context_and_material_rejected(self):
        import ssl

        from httpdriver.testing import generate_key_material

        with pytest.raises(ConfigurationError, match="not both"):
            build_driver(
                ssl_context=ssl.create_default_context(),
                key_material=generate_key_material(),
            )


class TestMetrics:
    """Test metric recording."""

    def _driver(self, transport, sleep, registry):
        return Driver(
            transport=transport,
            retry_policy=RetryPolicy(sleep=sleep),
            metrics=DriverMetrics(service_name="test", registry=registry),
        )

    def test_success_metrics(self, mock_transport, no_sleep, sample_urls):
        registry = CollectorRegistry()
        driver = self._driver(mock_transport, no_sleep, registry)
        mock_transport.add_failure()
        mock_transport.add_response(200, "ok")

        driver.do_get(sample_urls["page"])

        labels = {"service": "test", "method": "GET"}
        assert registry.get_sample_value("httpdriver_attempts_total", labels) == 2
        assert registry.get_sample_value("httpdriver_retries_total", labels) == 1
        assert registry.get_sample_value(
            "httpdriver_responses_total", {**labels, "status": "200"}
        ) == 1
        assert registry.get_sample_value(
            "httpdriver_request_duration_seconds_count", labels
        ) == 1

    def test_exhausted_metrics(self, mock_transport, no_sleep, sample_urls):
        registry = CollectorRegistry()
        driver = self._driver(mock_transport, no_sleep, registry)
        mock_transport.set_failure_mode("connection")

        with pytest.raises(TransportError):
            driver.do_post(sample_urls["post"])

        labels = {"service": "test", "method": "POST"}
        assert registry.get_sample_value("httpdriver_exhausted_total", labels) == 1
        assert registry.get_sample_value("httpdriver_attempts_total", labels) == 2


class RoutedTransport:
    """Transport that fails the first request to /flaky and answers the rest."""

    def __init__(self):
        self._lock = threading.Lock()
        self._flaky_failed = False

    def execute(self, request):
        if request.url.path == "/flaky":
            with self._lock:
                first = not self._flaky_failed
                self._flaky_failed = True
            if first:
                raise httpx.ConnectError("refused", request=request)
        return httpx.Response(200, text=request.url.path, request=request)

    def close(self):
        pass


class TestConcurrentCallers:
    """Test a driver shared by several threads."""

    def test_retry_pause_blocks_only_its_caller(self):
        sleeping = threading.Event()
        resume = threading.Event()

        def blocking_sleep(seconds):
            sleeping.set()
            resume.wait(timeout=5)

        driver = Driver(
            transport=RoutedTransport(),
            retry_policy=RetryPolicy(sleep=blocking_sleep),
        )

        with ThreadPoolExecutor(max_workers=1) as executor:
            retrying = executor.submit(driver.do_get, "https://peer.test/flaky")
            assert sleeping.wait(timeout=5)

            started = time.monotonic()
            body = driver.do_get("https://peer.test/fast")

            assert body == "/fast"
            assert time.monotonic() - started < 1
            assert not retrying.done()

            resume.set()
            assert retrying.result(timeout=5) == "/flaky"

    def test_parallel_requests(self):
        driver = Driver(transport=RoutedTransport())

        with ThreadPoolExecutor(max_workers=8) as executor:
            bodies = list(
                executor.map(
                    driver.do_get,
                    [f"https://peer.test/item/{i}" for i in range(32)],
                )
            )

        assert bodies == [f"/item/{i}" for i in range(32)]
