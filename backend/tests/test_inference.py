"""Tests for the Replicate create-then-poll client against a mocked transport."""

import json

import httpx
import pytest

from kapsa.errors import InferenceFailed, InferenceTimeout, ServiceUnavailable
from kapsa.services.inference import InferenceClient, ModelRef, normalize_output

BASE_URL = "https://replicate.test/v1"
VERSION = "5a6809ca6288247d06daf6365557e5e429063f32a21146b2a807c682652136b8"


class FakeReplicate:
    """Records requests and replays a scripted sequence of poll responses."""

    def __init__(self, *, create_status: int = 201, create_body: dict | None = None, polls: list | None = None):
        self.create_status = create_status
        self.create_body = create_body or {
            "id": "p1",
            "status": "starting",
            "urls": {"get": f"{BASE_URL}/predictions/p1"},
        }
        self.polls = list(polls or [])
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "POST":
            return httpx.Response(self.create_status, json=self.create_body)
        body = self.polls.pop(0) if len(self.polls) > 1 else self.polls[0]
        if isinstance(body, int):
            return httpx.Response(body, json={"detail": "error"})
        return httpx.Response(200, json=body)

    @property
    def polls_made(self) -> int:
        return sum(1 for r in self.requests if r.method == "GET")


def _client(fake: FakeReplicate) -> InferenceClient:
    return InferenceClient(api_token="r8_secret", base_url=BASE_URL, transport=httpx.MockTransport(fake))


async def test_run_polls_until_succeeded_and_joins_chunks():
    fake = FakeReplicate(
        polls=[
            {"id": "p1", "status": "processing"},
            {"id": "p1", "status": "succeeded", "output": ["Hel", "lo", None, "!"]},
        ]
    )

    result = await _client(fake).run(VERSION, {"prompt": "hi"}, poll_interval=0)

    assert result == "Hello!"
    assert fake.polls_made == 2
    create = fake.requests[0]
    assert create.url.path == "/v1/predictions"
    assert create.headers["Authorization"] == "Bearer r8_secret"
    assert json.loads(create.content) == {"version": VERSION, "input": {"prompt": "hi"}}


async def test_official_model_uses_model_predictions_endpoint():
    fake = FakeReplicate(polls=[{"status": "succeeded", "output": {"text": "transcript"}}])

    result = await _client(fake).run("vaibhavs10/incredibly-fast-whisper", {"audio": "x"}, poll_interval=0)

    assert result == "transcript"
    create = fake.requests[0]
    assert create.url.path == "/v1/models/vaibhavs10/incredibly-fast-whisper/predictions"
    assert json.loads(create.content) == {"input": {"audio": "x"}}


async def test_terminal_create_response_is_not_polled():
    fake = FakeReplicate(create_body={"id": "p1", "status": "succeeded", "output": "done"})

    assert await _client(fake).run(VERSION, {}, poll_interval=0) == "done"
    assert fake.polls_made == 0


async def test_failed_prediction_raises():
    fake = FakeReplicate(polls=[{"status": "failed", "error": "CUDA out of memory"}])

    with pytest.raises(InferenceFailed):
        await _client(fake).run(VERSION, {}, poll_interval=0)


async def test_canceled_prediction_raises():
    fake = FakeReplicate(polls=[{"status": "canceled"}])

    with pytest.raises(InferenceFailed):
        await _client(fake).run(VERSION, {}, poll_interval=0)


async def test_attempt_budget_exhausted_raises_timeout():
    fake = FakeReplicate(polls=[{"status": "processing"}])

    with pytest.raises(InferenceTimeout):
        await _client(fake).run(VERSION, {}, max_attempts=3, poll_interval=0)
    assert fake.polls_made == 3


async def test_rejected_create_is_service_unavailable():
    fake = FakeReplicate(create_status=500, create_body={"detail": "boom"})

    with pytest.raises(ServiceUnavailable):
        await _client(fake).run(VERSION, {}, poll_interval=0)
    assert fake.polls_made == 0


async def test_poll_error_is_service_unavailable():
    fake = FakeReplicate(polls=[503])

    with pytest.raises(ServiceUnavailable):
        await _client(fake).run(VERSION, {}, poll_interval=0)


async def test_transport_error_is_service_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = InferenceClient(api_token="t", base_url=BASE_URL, transport=httpx.MockTransport(handler))
    with pytest.raises(ServiceUnavailable):
        await client.run(VERSION, {}, poll_interval=0)


def test_model_ref():
    assert ModelRef(VERSION).is_version
    assert not ModelRef("owner/name").is_version
    assert ModelRef("owner/name").create_payload({"a": 1}) == {"input": {"a": 1}}


@pytest.mark.parametrize(
    "output,expected",
    [
        (None, ""),
        ("plain", "plain"),
        (["a", "b"], "ab"),
        ({"text": "t"}, "t"),
        (42, "42"),
    ],
)
def test_normalize_output(output, expected):
    assert normalize_output(output) == expected
