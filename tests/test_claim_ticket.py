import time

import pytest

from ledgerapi.core import claim_ticket


SECRET = "event-secret"


class TestClaimTicket:
    """QR 클레임 티켓 서명/검증 테스트"""

    def test_fresh_ticket_returns_payload(self):
        token = claim_ticket.sign({"event_id": "abc"}, SECRET, ttl_seconds=60)

        payload = claim_ticket.verify(token, SECRET)

        assert payload["event_id"] == "abc"
        assert payload["exp"] - payload["iat"] == 60

    def test_expired_ticket(self):
        token = claim_ticket.sign({"event_id": "abc"}, SECRET, 60, now=int(time.time()) - 120)

        with pytest.raises(claim_ticket.ClaimTicketError):
            claim_ticket.verify(token, SECRET, clock_tolerance_seconds=10)

    def test_clock_tolerance(self):
        token = claim_ticket.sign({"event_id": "abc"}, SECRET, 60, now=int(time.time()) - 65)

        assert claim_ticket.verify(token, SECRET, clock_tolerance_seconds=10)["event_id"] == "abc"
        with pytest.raises(claim_ticket.ClaimTicketError):
            claim_ticket.verify(token, SECRET, clock_tolerance_seconds=0)

    def test_wrong_secret(self):
        token = claim_ticket.sign({"event_id": "abc"}, SECRET, 60)

        with pytest.raises(claim_ticket.ClaimTicketError):
            claim_ticket.verify(token, "another-secret")

    @pytest.mark.parametrize("token", ["", "not-a-token", "a.b.c"])
    def test_malformed_token(self, token):
        with pytest.raises(claim_ticket.ClaimTicketError):
            claim_ticket.verify(token, SECRET)
