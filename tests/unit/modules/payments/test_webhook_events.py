"""Notification normalization tests."""

import pytest

from src.modules.payments.events import (
    WebhookEventType,
    build_body_from_query_params,
    extract_id_from_url,
    is_valid_webhook_structure,
    parse_webhook_event,
)


class TestExtractIdFromUrl:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("123456789", "123456789"),
            ("  987654321 ", "987654321"),
            ("https://api.mercadolibre.com/merchant_orders/55512345", "55512345"),
            ("https://api.mercadopago.com/v1/payments/123456?foo=bar", "123456"),
            ("not-a-url", "not-a-url"),
            (None, "unknown"),
            ("", "unknown"),
        ],
    )
    def test_extracts_numeric_id(self, value, expected):
        assert extract_id_from_url(value) == expected


class TestBuildBodyFromQueryParams:
    def test_data_id_and_type(self):
        body = build_body_from_query_params({"data.id": "123456", "type": "payment"})

        assert body == {"id": "123456", "data": {"id": "123456"}, "type": "payment"}

    def test_ipn_topic_and_resource_url(self):
        body = build_body_from_query_params(
            {
                "topic": "merchant_order",
                "id": "https://api.mercadolibre.com/merchant_orders/777888999",
            }
        )

        assert body["topic"] == "merchant_order"
        assert body["id"] == "777888999"
        assert body["resource"].endswith("/777888999")

    def test_empty_query_builds_empty_body(self):
        assert build_body_from_query_params({}) == {}


class TestParseWebhookEvent:
    def test_webhook_style_payment_uses_data_id(self):
        event = parse_webhook_event(
            {"type": "payment", "id": 42, "data": {"id": "123456789"}}
        )

        assert event.type == WebhookEventType.PAYMENT
        assert event.resource_id == "123456789"

    def test_ipn_style_payment_uses_resource(self):
        event = parse_webhook_event({"topic": "payment", "resource": "123456789"})

        assert event.type == WebhookEventType.PAYMENT
        assert event.resource_id == "123456789"

    def test_action_prefix_is_payment(self):
        event = parse_webhook_event(
            {"action": "payment.updated", "data": {"id": "555666777"}}
        )

        assert event.type == WebhookEventType.PAYMENT
        assert event.resource_id == "555666777"

    def test_merchant_order_resource_url(self):
        event = parse_webhook_event(
            {
                "topic": "merchant_order",
                "resource": "https://api.mercadolibre.com/merchant_orders/987654321",
            }
        )

        assert event.type == WebhookEventType.MERCHANT_ORDER
        assert event.resource_id == "987654321"

    def test_bare_numeric_id_defaults_to_payment(self):
        event = parse_webhook_event({"id": 123456789})

        assert event.type == WebhookEventType.PAYMENT
        assert event.resource_id == "123456789"

    def test_non_object_body_is_unknown(self):
        event = parse_webhook_event(["not", "an", "object"])

        assert event.type == WebhookEventType.UNKNOWN
        assert event.resource_id == "invalid_body"

    def test_unrecognized_topic_is_unknown(self):
        event = parse_webhook_event({"topic": "chargebacks", "resource": "abc"})

        assert event.type == WebhookEventType.UNKNOWN


class TestWebhookStructure:
    @pytest.mark.parametrize(
        "body, expected",
        [
            ({"id": "1"}, True),
            ({"topic": "payment"}, True),
            ({"resource": "x"}, True),
            ({"data": {"id": "1"}}, True),
            ({"action": "payment.updated"}, True),
            ({"data": {}}, False),
            ({}, False),
            (None, False),
            ("payment", False),
        ],
    )
    def test_requires_an_identifying_field(self, body, expected):
        assert is_valid_webhook_structure(body) is expected
