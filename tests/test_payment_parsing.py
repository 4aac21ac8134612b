from decimal import Decimal

import pytest

from app.schemas.payment import is_valid_identifier, parse_purchase_message


class TestParsePurchaseMessage:
    def test_legacy_flat_shape(self):
        parsed = parse_purchase_message('{"purchaseId": "P1", "userId": "U1", "amount": 59.90}')

        assert parsed.purchase_id == "P1"
        assert parsed.user_id == "U1"
        assert parsed.amount == Decimal("59.90")
        assert isinstance(parsed.amount, Decimal)
        assert parsed.correlation_id is None

    def test_envelope_shape(self):
        body = (
            '{"eventId": "evt-1", "type": "PaymentInitiated", "correlationId": "trace-1",'
            ' "data": {"purchaseId": "P1", "userId": "U1", "amount": 59.90}}'
        )
        parsed = parse_purchase_message(body)

        assert (parsed.purchase_id, parsed.user_id, parsed.amount) == ("P1", "U1", Decimal("59.90"))
        assert parsed.correlation_id == "trace-1"
        assert parsed.causation_id == "evt-1"

    def test_envelope_and_legacy_are_equivalent(self):
        legacy = parse_purchase_message('{"purchaseId": "P1", "userId": "U1", "amount": 10}')
        envelope = parse_purchase_message('{"type": "X", "data": {"purchaseId": "P1", "userId": "U1", "amount": 10}}')

        assert (legacy.purchase_id, legacy.user_id, legacy.amount) == (
            envelope.purchase_id, envelope.user_id, envelope.amount
        )

    def test_pascal_case_properties(self):
        parsed = parse_purchase_message('{"Type": "X", "Data": {"PurchaseId": "P9", "UserId": "U9", "Amount": 1.5}}')

        assert parsed.purchase_id == "P9"
        assert parsed.amount == Decimal("1.5")

    def test_envelope_non_numeric_amount_reads_as_zero(self):
        parsed = parse_purchase_message('{"type": "X", "data": {"purchaseId": "P1", "userId": "U1", "amount": "12.00"}}')

        assert parsed.amount == Decimal("0")

    def test_legacy_missing_amount_defaults_to_zero(self):
        parsed = parse_purchase_message('{"purchaseId": "P1", "userId": "U1"}')

        assert parsed.amount == Decimal("0")

    def test_envelope_with_invalid_data_falls_back_to_legacy(self):
        body = '{"type": "X", "data": {"purchaseId": 1, "userId": "U1", "amount": 1}, "purchaseId": "P2", "userId": "U2"}'
        parsed = parse_purchase_message(body)

        assert parsed.purchase_id == "P2"

    @pytest.mark.parametrize("body", [
        "{not-json}",
        "",
        "   ",
        None,
        "[1, 2, 3]",
        '"just a string"',
        '{"purchaseId": "", "userId": "U1", "amount": 1}',
        '{"purchaseId": "P1", "userId": "not valid!", "amount": 1}',
        '{"purchaseId": 42, "userId": "U1", "amount": 1}',
        '{"type": "X", "data": {"purchaseId": "P1", "amount": 1}}',
        '{"somethingElse": true}',
    ])
    def test_unprocessable_bodies(self, body):
        assert parse_purchase_message(body) is None


@pytest.mark.parametrize("value,expected", [
    ("P1", True),
    ("65f1c0ffee0123456789abcd", True),
    ("a-b_c", True),
    ("", False),
    ("has space", False),
    ("x" * 65, False),
    (None, False),
    (123, False),
])
def test_is_valid_identifier(value, expected):
    assert is_valid_identifier(value) is expected
