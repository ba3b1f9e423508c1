"""Tests for the HTTP settlement client with a mocked requests session."""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest
import requests

from healthpay.errors import BalanceQueryError, ErrorKind, StatusQueryError, SubmissionError
from healthpay.networks import get_network
from healthpay.settlement import HttpSettlementClient

USDC = get_network("base").token("USDC")


def response(status_code: int = 200, body=None, text: str = "") -> MagicMock:
    resp = MagicMock()
    resp.status_code = status_code
    resp.text = text
    resp.json.return_value = body if body is not None else {}
    if status_code >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"HTTP {status_code}", response=resp)
    return resp


@pytest.fixture
def session() -> MagicMock:
    session = MagicMock()
    session.headers = {}
    return session


@pytest.fixture
def client(session) -> HttpSettlementClient:
    return HttpSettlementClient("https://settle.example/", chain_id=8453, token=USDC, session=session)


class TestSubmitTransfer:
    def test_verify_then_settle(self, client, session) -> None:
        session.post.side_effect = [
            response(body={"isValid": True}),
            response(body={"success": True, "transaction": "0xabc"}),
        ]

        handle = client.submit_transfer({"payload": {}}, {"scheme": "exact"})

        assert handle == "0xabc"
        urls = [c.args[0] for c in session.post.call_args_list]
        assert urls == ["https://settle.example/verify", "https://settle.example/settle"]
        assert session.post.call_args.kwargs["json"] == {
            "paymentPayload": {"payload": {}},
            "paymentRequirements": {"scheme": "exact"},
        }

    def test_sets_chain_header(self, client, session) -> None:
        assert session.headers["X-Chain-ID"] == "8453"

    def test_invalid_signature_is_permanent(self, client, session) -> None:
        session.post.return_value = response(body={"isValid": False, "invalidReason": "bad signature"})

        with pytest.raises(SubmissionError) as exc_info:
            client.submit_transfer({}, {})

        assert exc_info.value.kind is ErrorKind.PERMANENT
        assert "bad signature" in exc_info.value.message
        assert session.post.call_count == 1

    def test_settle_failure_is_permanent(self, client, session) -> None:
        session.post.side_effect = [
            response(body={"isValid": True}),
            response(body={"success": False, "errorReason": "insufficient_funds"}),
        ]

        with pytest.raises(SubmissionError, match="insufficient_funds") as exc_info:
            client.submit_transfer({}, {})
        assert not exc_info.value.transient

    @pytest.mark.parametrize("status_code", [429, 500, 502, 503, 504])
    def test_server_errors_are_transient(self, client, session, status_code) -> None:
        session.post.return_value = response(status_code, text="try later")

        with pytest.raises(SubmissionError) as exc_info:
            client.submit_transfer({}, {})
        assert exc_info.value.transient
        assert f"HTTP {status_code}" in exc_info.value.message

    @pytest.mark.parametrize("status_code", [400, 402, 404, 422])
    def test_client_errors_are_permanent(self, client, session, status_code) -> None:
        session.post.return_value = response(status_code)

        with pytest.raises(SubmissionError) as exc_info:
            client.submit_transfer({}, {})
        assert not exc_info.value.transient

    @pytest.mark.parametrize("exc", [requests.Timeout("read timed out"), requests.ConnectionError("refused")])
    def test_network_errors_are_transient(self, client, session, exc) -> None:
        session.post.side_effect = exc

        with pytest.raises(SubmissionError) as exc_info:
            client.submit_transfer({}, {})
        assert exc_info.value.transient

    def test_missing_transaction_is_permanent(self, client, session) -> None:
        session.post.side_effect = [response(body={"isValid": True}), response(body={"success": True})]

        with pytest.raises(SubmissionError, match="no transaction"):
            client.submit_transfer({}, {})


class TestTransactionStatus:
    def test_confirmed_status(self, client, session) -> None:
        session.get.return_value = response(body={"confirmed": True, "confirmations": 2, "receipt": {"block": 9}})

        status = client.get_transaction_status("0xabc")

        assert status.confirmed
        assert status.confirmation_count == 2
        assert status.receipt == {"block": 9}
        assert session.get.call_args.args[0] == "https://settle.example/payments/status/0xabc"

    def test_pending_status_has_no_receipt(self, client, session) -> None:
        session.get.return_value = response(body={"confirmed": False, "receipt": {"partial": True}})

        status = client.get_transaction_status("0xabc")

        assert not status.confirmed
        assert status.confirmation_count == 0
        assert status.receipt is None

    def test_confirmed_without_receipt_falls_back_to_body(self, client, session) -> None:
        body = {"confirmed": True, "confirmations": 1}
        session.get.return_value = response(body=body)

        assert client.get_transaction_status("0xabc").receipt == body

    def test_failed_status(self, client, session) -> None:
        session.get.return_value = response(body={"confirmed": False, "status": "reverted"})

        assert client.get_transaction_status("0xabc").failed

    def test_network_error_raises_status_query_error(self, client, session) -> None:
        session.get.side_effect = requests.ConnectionError("reset")

        with pytest.raises(StatusQueryError):
            client.get_transaction_status("0xabc")

    def test_http_error_raises_status_query_error(self, client, session) -> None:
        session.get.return_value = response(503)

        with pytest.raises(StatusQueryError):
            client.get_transaction_status("0xabc")


class TestBalance:
    def test_balance_converted_from_base_units(self, client, session) -> None:
        session.get.return_value = response(body={"balance": "2990000"})

        assert client.get_balance("0xabc") == Decimal("2.99")
        assert session.get.call_args.args[0] == "https://settle.example/balances/usdc/0xabc"

    def test_missing_balance_is_zero(self, client, session) -> None:
        session.get.return_value = response(body={})

        assert client.get_balance("0xabc") == 0

    def test_error_raises_balance_query_error(self, client, session) -> None:
        session.get.side_effect = requests.Timeout("slow")

        with pytest.raises(BalanceQueryError):
            client.get_balance("0xabc")
