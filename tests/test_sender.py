"""Tests for the single-target and multicast send paths."""

import pytest

from conftest import unavailable
from pushrelay.errors import (
    InternalConsistencyError,
    InvalidArgumentError,
    InvalidRequestError,
    MalformedJsonError,
    TransportExhaustedError,
    UnexpectedResultCountError,
)
from pushrelay.messages import Message, Notification
from pushrelay.outbound.gateway import GatewayResponse
from pushrelay.results import BatchOutcome, GroupOutcome, RecipientOutcome
from pushrelay.sender import MulticastRetryState

MESSAGE = Message.from_text("hello", time_to_live=60)


def multicast_body(multicast_id, *results):
    success = sum(1 for r in results if "message_id" in r)
    return {
        "multicast_id": multicast_id,
        "success": success,
        "failure": len(results) - success,
        "canonical_ids": sum(1 for r in results if "registration_id" in r),
        "results": list(results),
    }


def server_error(status=503):
    return GatewayResponse(status_code=status, body="Service Unavailable")


class TestSingleSend:
    def test_success_on_first_attempt(self, make_sender, sleeps):
        sender, transport = make_sender({"results": [{"message_id": "m1"}]})

        outcome = sender.send(MESSAGE, "token-1", retries=3)

        assert outcome == RecipientOutcome(message_id="m1")
        assert sleeps == []
        assert transport.requests == [
            {"to": "token-1", "time_to_live": 60, "data": {"message": "hello"}}
        ]

    def test_retries_unavailability_then_succeeds(self, make_sender, sleeps):
        sender, transport = make_sender(
            unavailable(),
            server_error(500),
            {"results": [{"message_id": "m1"}]},
        )

        outcome = sender.send(MESSAGE, "token-1", retries=3)

        assert outcome.message_id == "m1"
        assert len(transport.requests) == 3
        assert len(sleeps) == 2
        # first wait drawn from [0.5s, 1.5s), second from [1s, 3s)
        assert 0.5 <= sleeps[0] < 1.5
        assert 1.0 <= sleeps[1] < 3.0

    def test_gateway_error_code_is_not_retried(self, make_sender, sleeps):
        sender, transport = make_sender({"results": [{"error": "Unavailable"}]})

        outcome = sender.send(MESSAGE, "token-1", retries=3)

        assert outcome == RecipientOutcome(error_code="Unavailable")
        assert len(transport.requests) == 1
        assert sleeps == []

    def test_exhaustion_after_retries_plus_one_attempts(self, make_sender, sleeps):
        sender, transport = make_sender(*[unavailable() for _ in range(4)])

        with pytest.raises(TransportExhaustedError) as exc_info:
            sender.send(MESSAGE, "token-1", retries=3)

        assert exc_info.value.attempts == 4
        assert len(transport.requests) == 4
        assert len(sleeps) == 3

    def test_client_error_raises_immediately(self, make_sender, sleeps):
        sender, transport = make_sender(GatewayResponse(status_code=400, body="bad json"))

        with pytest.raises(InvalidRequestError) as exc_info:
            sender.send(MESSAGE, "token-1", retries=3)

        assert exc_info.value.status_code == 400
        assert exc_info.value.body == "bad json"
        assert len(transport.requests) == 1
        assert sleeps == []

    @pytest.mark.parametrize("target", ["", None])
    def test_empty_target_makes_no_call(self, make_sender, target):
        sender, transport = make_sender()

        with pytest.raises(InvalidArgumentError):
            sender.send(MESSAGE, target, retries=3)
        assert transport.requests == []

    def test_topic_send(self, make_sender):
        sender, transport = make_sender({"message_id": 42})

        outcome = sender.send(MESSAGE, "/topics/news", retries=0)

        assert outcome == RecipientOutcome(message_id="42")
        assert transport.requests[0]["to"] == "/topics/news"

    def test_group_send(self, make_sender):
        sender, _ = make_sender({"success": 2, "failure": 1, "failed_registration_ids": ["x"]})

        outcome = sender.send(MESSAGE, "group-key", retries=0)

        assert outcome == GroupOutcome(success=2, failure=1, failed_recipient_ids=("x",))

    def test_decode_failures_are_not_retried(self, make_sender, sleeps):
        sender, transport = make_sender(GatewayResponse(status_code=200, body="<html>"))

        with pytest.raises(MalformedJsonError):
            sender.send(MESSAGE, "token-1", retries=3)
        assert len(transport.requests) == 1

    def test_unexpected_result_count_is_not_retried(self, make_sender):
        sender, transport = make_sender({"results": []})

        with pytest.raises(UnexpectedResultCountError):
            sender.send(MESSAGE, "token-1", retries=3)
        assert len(transport.requests) == 1

    def test_request_omits_unset_fields(self, make_sender):
        sender, transport = make_sender({"results": [{"message_id": "m1"}]})
        message = Message(priority="high", notification=Notification(title="Hi", badge=3))

        sender.send_no_retry(message, "token-1")

        assert transport.requests == [
            {"to": "token-1", "priority": "high", "notification": {"title": "Hi", "badge": "3"}}
        ]


class TestMulticastSend:
    def test_narrows_to_retryable_recipients_and_reconciles(self, make_sender, sleeps):
        sender, transport = make_sender(
            multicast_body(555, {"message_id": "m1"}, {"error": "Unavailable"}),
            multicast_body(556, {"message_id": "m2"}),
        )

        batch = sender.send_multicast(MESSAGE, ["T1", "T2"], retries=3)

        assert [r["registration_ids"] for r in transport.requests] == [["T1", "T2"], ["T2"]]
        assert batch.success_count == 2
        assert batch.failure_count == 0
        assert batch.batch_id == 555
        assert batch.retry_batch_ids == (556,)
        assert batch.results == (RecipientOutcome(message_id="m1"), RecipientOutcome(message_id="m2"))
        assert len(sleeps) == 1

    def test_no_double_counting_across_attempts(self, make_sender):
        sender, _ = make_sender(
            multicast_body(1, {"message_id": "a1"}, {"error": "InternalServerError"}, {"message_id": "c1"}),
            multicast_body(2, {"message_id": "b2"}),
        )

        batch = sender.send_multicast(MESSAGE, ["a", "b", "c"], retries=3)

        assert batch.success_count == 3
        assert batch.failure_count == 0
        assert [r.message_id for r in batch.results] == ["a1", "b2", "c1"]

    def test_order_preserved_when_retry_order_differs(self, make_sender):
        sender, transport = make_sender(
            multicast_body(
                10,
                {"error": "Unavailable"},
                {"message_id": "b1", "registration_id": "b-new"},
                {"error": "Unavailable"},
                {"error": "NotRegistered"},
            ),
            multicast_body(11, {"message_id": "a2"}, {"error": "Unavailable"}),
            multicast_body(12, {"error": "MismatchSenderId"}),
        )

        batch = sender.send_multicast(MESSAGE, ["a", "b", "c", "d"], retries=5)

        assert [r["registration_ids"] for r in transport.requests] == [["a", "b", "c", "d"], ["a", "c"], ["c"]]
        assert batch.results == (
            RecipientOutcome(message_id="a2"),
            RecipientOutcome(message_id="b1", canonical_recipient_id="b-new"),
            RecipientOutcome(error_code="MismatchSenderId"),
            RecipientOutcome(error_code="NotRegistered"),
        )
        assert (batch.success_count, batch.failure_count, batch.canonical_id_count) == (2, 2, 1)
        assert batch.retry_batch_ids == (11, 12)

    def test_keeps_last_retryable_error_when_budget_runs_out(self, make_sender, sleeps):
        sender, transport = make_sender(
            multicast_body(1, {"message_id": "a1"}, {"error": "Unavailable"}),
            multicast_body(2, {"error": "Unavailable"}),
        )

        batch = sender.send_multicast(MESSAGE, ["a", "b"], retries=1)

        assert len(transport.requests) == 2
        assert batch.results[1] == RecipientOutcome(error_code="Unavailable")
        assert (batch.success_count, batch.failure_count) == (1, 1)
        assert len(sleeps) == 1

    def test_unavailable_attempt_keeps_pending_set(self, make_sender, sleeps):
        sender, transport = make_sender(
            multicast_body(1, {"message_id": "a1"}, {"error": "Unavailable"}),
            server_error(),
            unavailable(),
            multicast_body(2, {"message_id": "b4"}),
        )

        batch = sender.send_multicast(MESSAGE, ["a", "b"], retries=3)

        assert [r["registration_ids"] for r in transport.requests] == [["a", "b"], ["b"], ["b"], ["b"]]
        assert batch.batch_id == 1
        assert batch.retry_batch_ids == (2,)
        assert [r.message_id for r in batch.results] == ["a1", "b4"]
        assert len(sleeps) == 3

    def test_exhausted_without_any_decoded_attempt(self, make_sender, sleeps):
        sender, transport = make_sender(*[unavailable() for _ in range(4)])

        with pytest.raises(TransportExhaustedError) as exc_info:
            sender.send_multicast(MESSAGE, ["a", "b"], retries=3)

        assert exc_info.value.attempts == 4
        assert len(transport.requests) == 4
        assert len(sleeps) == 3

    def test_exhausted_after_late_unavailability_still_reconciles(self, make_sender):
        sender, _ = make_sender(
            multicast_body(1, {"message_id": "a1"}, {"error": "Unavailable"}),
            unavailable(),
        )

        batch = sender.send_multicast(MESSAGE, ["a", "b"], retries=1)

        assert batch.results == (RecipientOutcome(message_id="a1"), RecipientOutcome(error_code="Unavailable"))

    def test_client_error_propagates(self, make_sender):
        sender, transport = make_sender(GatewayResponse(status_code=401, body="Unauthorized"))

        with pytest.raises(InvalidRequestError):
            sender.send_multicast(MESSAGE, ["a"], retries=3)
        assert len(transport.requests) == 1

    def test_result_count_mismatch_is_internal_error(self, make_sender):
        sender, _ = make_sender(multicast_body(1, {"message_id": "a1"}))

        with pytest.raises(InternalConsistencyError):
            sender.send_multicast(MESSAGE, ["a", "b"], retries=3)

    @pytest.mark.parametrize("recipients", [[], None])
    def test_empty_recipients_make_no_call(self, make_sender, recipients):
        sender, transport = make_sender()

        with pytest.raises(InvalidArgumentError):
            sender.send_multicast(MESSAGE, recipients, retries=3)
        assert transport.requests == []

    def test_caller_list_is_not_mutated(self, make_sender):
        sender, _ = make_sender(
            multicast_body(1, {"message_id": "a1"}, {"error": "Unavailable"}),
            multicast_body(2, {"message_id": "b2"}),
        )
        recipients = ["a", "b"]

        sender.send_multicast(MESSAGE, recipients, retries=1)

        assert recipients == ["a", "b"]


class TestMulticastRetryState:
    def test_record_batch_narrows_and_merges(self):
        state = MulticastRetryState.start(["a", "b", "c"])
        batch = BatchOutcome(
            success_count=1,
            failure_count=2,
            canonical_id_count=0,
            batch_id=99,
            results=(
                RecipientOutcome(error_code="InternalServerError"),
                RecipientOutcome(message_id="b1"),
                RecipientOutcome(error_code="InvalidRegistration"),
            ),
        )

        after = state.record_batch(batch)

        assert after.pending == ("a",)
        assert after.batch_ids == (99,)
        assert after.attempts == 1
        assert after.resolved["c"] == RecipientOutcome(error_code="InvalidRegistration")
        # the earlier state is unchanged
        assert state.pending == ("a", "b", "c")
        assert state.resolved == {}

    def test_record_unavailable_only_counts_the_attempt(self):
        state = MulticastRetryState.start(["a"]).record_unavailable()

        assert state.attempts == 1
        assert state.pending == ("a",)
        assert not state.has_decoded_batch

    def test_size_mismatch(self):
        state = MulticastRetryState.start(["a", "b"])
        batch = BatchOutcome(success_count=0, failure_count=0, canonical_id_count=0, batch_id=1)

        with pytest.raises(InternalConsistencyError):
            state.record_batch(batch)
