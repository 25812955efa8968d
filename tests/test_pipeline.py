"""Tests for the ordered request-admission pipeline.

A probe endpoint runs the pipeline with an injected limiter and origin
guard, so each test controls the limits and sees exactly which stages ran.
"""

from unittest.mock import Mock

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient
from starlette.requests import Request as StarletteRequest

from portfolio_api.core.exception_handlers import setup_exception_handlers
from portfolio_api.core.origin import OriginGuard
from portfolio_api.core.pipeline import (
    DEFAULT_STAGES,
    PipelineContext,
    RequestPipeline,
    RequestState,
    get_client_ip,
)
from portfolio_api.core.rate_limit import LimitClass, LimitClassConfig, SlidingWindowRateLimiter
from portfolio_api.utils.sanitizer import FieldRule

SITE = "https://portfolio.example.com"
HEADERS = {"Origin": SITE, "Content-Type": "application/json"}


def make_limiter(chat_max: int = 2, global_max: int = 30) -> SlidingWindowRateLimiter:
    return SlidingWindowRateLimiter(
        {
            LimitClass.GLOBAL: LimitClassConfig(60, global_max, "global limit"),
            LimitClass.CHATBOT: LimitClassConfig(60, chat_max, "chat limit"),
        },
        clock=Mock(return_value=1000.0),
    )


def build_client(pipeline: RequestPipeline, dispatched: list[PipelineContext]) -> TestClient:
    app = FastAPI()
    setup_exception_handlers(app)

    @app.api_route("/probe", methods=["POST", "OPTIONS"])
    async def probe(request: Request):
        ctx = await pipeline.run(request)
        if ctx.response is not None:
            return ctx.response
        ctx.advance(RequestState.DISPATCHED)
        dispatched.append(ctx)
        return ctx.respond("ok", {"echo": ctx.fields["message"]})

    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def limiter() -> SlidingWindowRateLimiter:
    return make_limiter()


@pytest.fixture
def dispatched() -> list[PipelineContext]:
    return []


@pytest.fixture
def client(limiter: SlidingWindowRateLimiter, dispatched: list[PipelineContext]) -> TestClient:
    pipeline = RequestPipeline(
        LimitClass.CHATBOT,
        [FieldRule(name="message", min_length=1, max_length=50)],
        limiter=limiter,
        guard=OriginGuard([SITE]),
    )
    return build_client(pipeline, dispatched)


def test_admitted_request_reaches_dispatch(client: TestClient, dispatched: list) -> None:
    response = client.post("/probe", json={"message": "  hello   there "}, headers=HEADERS)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "ok"
    assert body["data"] == {"echo": "hello there"}
    assert body["timestamp"].endswith("Z")

    assert response.headers["Access-Control-Allow-Origin"] == SITE
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-RateLimit-Limit"] == "2"
    assert response.headers["X-RateLimit-Remaining"] == "1"

    assert dispatched[0].visited == [
        RequestState.RECEIVED,
        RequestState.RATE_CHECKED,
        RequestState.ORIGIN_CHECKED,
        RequestState.VALIDATED,
        RequestState.DISPATCHED,
        RequestState.RESPONDED,
    ]


def test_preflight_returns_204_without_counting(client: TestClient, limiter, dispatched: list) -> None:
    response = client.options(
        "/probe",
        headers={"Origin": SITE, "Access-Control-Request-Method": "POST"},
    )

    assert response.status_code == 204
    assert response.content == b""
    assert response.headers["Access-Control-Allow-Origin"] == SITE
    assert response.headers["Access-Control-Allow-Methods"] == "POST, OPTIONS"
    assert "X-RateLimit-Limit" not in response.headers
    assert len(limiter.store) == 0
    assert dispatched == []


def test_rate_limited_request_never_reaches_validation(client: TestClient, dispatched: list) -> None:
    client.post("/probe", json={"message": "one"}, headers=HEADERS)
    client.post("/probe", json={"message": "two"}, headers=HEADERS)

    response = client.post("/probe", json={"message": ""}, headers=HEADERS)

    assert response.status_code == 429
    error = response.json()["error"]
    assert error["category"] == "RATE_LIMIT_ERROR"
    assert error["message"] == "chat limit"
    assert error["retryAfterSeconds"] == 60
    assert "fields" not in error
    assert response.headers["Retry-After"] == "60"
    assert response.headers["X-RateLimit-Remaining"] == "0"
    assert response.headers["Access-Control-Allow-Origin"] == SITE
    assert len(dispatched) == 2


def test_global_class_is_checked_before_endpoint_class(dispatched: list) -> None:
    limiter = make_limiter(chat_max=5, global_max=1)
    client = build_client(
        RequestPipeline(LimitClass.CHATBOT, [FieldRule(name="message")], limiter=limiter, guard=OriginGuard([SITE])),
        dispatched,
    )

    client.post("/probe", json={"message": "one"}, headers=HEADERS)
    response = client.post("/probe", json={"message": "two"}, headers=HEADERS)

    assert response.status_code == 429
    assert response.json()["error"]["message"] == "global limit"
    assert limiter.store.get("chatbot:testclient").timestamps == [1000.0]


def test_forbidden_origin_is_rejected_after_rate_check(client: TestClient, limiter, dispatched: list) -> None:
    response = client.post(
        "/probe",
        json={"message": "hi"},
        headers={"Origin": "https://evil.io", "Content-Type": "application/json"},
    )

    assert response.status_code == 403
    body = response.json()
    assert body["success"] is False
    assert body["error"]["category"] == "FORBIDDEN"
    assert response.headers["Access-Control-Allow-Origin"] == SITE
    assert response.headers["X-RateLimit-Limit"] == "2"
    assert limiter.store.get("chatbot:testclient") is not None
    assert dispatched == []


def test_missing_origin_and_referer_is_forbidden(client: TestClient) -> None:
    response = client.post("/probe", json={"message": "hi"})

    assert response.status_code == 403


@pytest.mark.parametrize(
    "kwargs",
    [
        {"content": b'{"message": "hi"}', "headers": {"Origin": SITE, "Content-Type": "text/plain"}},
        {"content": b"{not json", "headers": HEADERS},
        {"content": b'["message"]', "headers": HEADERS},
    ],
)
def test_body_must_be_a_json_object(client: TestClient, kwargs: dict) -> None:
    response = client.post("/probe", **kwargs)

    assert response.status_code == 400
    assert response.json()["error"]["category"] == "VALIDATION_ERROR"


def test_field_errors_are_listed(client: TestClient, dispatched: list) -> None:
    response = client.post("/probe", json={"message": "<>"}, headers=HEADERS)

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["message"] == "Message is required"
    assert error["fields"] == [
        {"field": "message", "kind": "REQUIRED_FIELD", "message": "Message is required"}
    ]
    assert dispatched == []


def test_unexpected_stage_error_becomes_500(limiter, dispatched: list) -> None:
    async def broken_stage(ctx: PipelineContext) -> None:
        raise RuntimeError("stage exploded")

    stages = list(DEFAULT_STAGES)
    stages.insert(stages.index(DEFAULT_STAGES[-1]), broken_stage)
    client = build_client(
        RequestPipeline(LimitClass.CHATBOT, [FieldRule(name="message")], stages=stages, limiter=limiter, guard=OriginGuard([SITE])),
        dispatched,
    )

    response = client.post("/probe", json={"message": "hi"}, headers=HEADERS)

    assert response.status_code == 500
    error = response.json()["error"]
    assert error["category"] == "SYSTEM_ERROR"
    assert "stage exploded" not in response.text
    assert "technical" not in error
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert dispatched == []


def test_request_state_never_moves_backwards(limiter) -> None:
    ctx = PipelineContext(
        request=Mock(),
        limit_class=LimitClass.CHATBOT,
        rules=(),
        limiter=limiter,
        guard=OriginGuard([SITE]),
    )
    ctx.advance(RequestState.RATE_CHECKED)

    with pytest.raises(RuntimeError):
        ctx.advance(RequestState.RECEIVED)


def _request(headers: dict[str, str], client: tuple[str, int] | None = ("10.0.0.9", 1234)) -> StarletteRequest:
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in headers.items()],
        "client": client,
    }
    return StarletteRequest(scope)


@pytest.mark.parametrize(
    "headers, client_addr, expected",
    [
        ({"X-Forwarded-For": "203.0.113.7, 10.0.0.1"}, ("10.0.0.9", 1234), "203.0.113.7"),
        ({"X-Real-IP": "198.51.100.4"}, ("10.0.0.9", 1234), "198.51.100.4"),
        ({}, ("10.0.0.9", 1234), "10.0.0.9"),
        ({}, None, "unknown"),
    ],
)
def test_get_client_ip(headers: dict, client_addr, expected: str) -> None:
    assert get_client_ip(_request(headers, client_addr)) == expected
