from types import SimpleNamespace

from src.utils.logger import get_client_ip, redact_sensitive_fields


def make_request(headers: dict, host: str | None = "10.0.0.9"):
    return SimpleNamespace(
        headers=headers, client=SimpleNamespace(host=host) if host else None
    )


class TestClientIP:
    def test_proxy_appended_hop(self):
        request = make_request({"x-forwarded-for": "179.32.200.10, 6.6.6.6"})

        assert get_client_ip(request, trusted_proxies=1) == "6.6.6.6"

    def test_two_trusted_proxies(self):
        request = make_request(
            {"x-forwarded-for": "1.1.1.1, 203.0.113.7, 10.0.0.1"}
        )

        assert get_client_ip(request, trusted_proxies=2) == "203.0.113.7"

    def test_more_proxies_than_hops(self):
        request = make_request({"x-forwarded-for": "203.0.113.7"})

        assert get_client_ip(request, trusted_proxies=3) == "203.0.113.7"

    def test_headers_ignored_without_trusted_proxies(self):
        request = make_request(
            {"x-forwarded-for": "179.32.200.10", "x-real-ip": "179.32.200.10"}
        )

        assert get_client_ip(request, trusted_proxies=0) == "10.0.0.9"

    def test_default_reads_settings(self, monkeypatch):
        monkeypatch.setenv("TRUSTED_PROXY_COUNT", "0")
        request = make_request({"x-forwarded-for": "179.32.200.10"})

        assert get_client_ip(request) == "10.0.0.9"

    def test_real_ip_header(self):
        request = make_request({"x-real-ip": " 198.51.100.4 "})

        assert get_client_ip(request, trusted_proxies=1) == "198.51.100.4"

    def test_socket_address(self):
        assert get_client_ip(make_request({})) == "10.0.0.9"

    def test_no_client(self):
        assert get_client_ip(make_request({}, host=None)) == "127.0.0.1"


class TestRedaction:
    def test_masks_credentials(self):
        event = redact_sensitive_fields(
            None, "info", {"event": "x", "signature": "ts=1,v1=abc", "user_id": "u1"}
        )

        assert event == {"event": "x", "signature": "***", "user_id": "u1"}

    def test_summarizes_images(self):
        event = redact_sensitive_fields(None, "info", {"image_base64": "a" * 40})

        assert event["image_base64"] == "<40 base64 chars>"

    def test_empty_values_untouched(self):
        event = redact_sensitive_fields(None, "info", {"signature": None})

        assert event["signature"] is None
