"""Ordered request-admission pipeline shared by the POST endpoints.

Every endpoint runs the same stages before its business logic:

    log -> set_security_headers -> handle_preflight -> rate_limit
        -> origin_check -> field_validate

A stage either returns ``None`` (continue), returns a terminal ``Response``
(CORS preflight) or raises an ``AppError`` (429, 403, 400). Both stop the
pipeline. Anything else a stage raises propagates unchanged to the global
exception handler and becomes a 500 response.

Headers produced by the stages are stored on ``request.state`` so responses
rendered by the exception handlers carry the same CORS, hardening and rate
limit headers as successful ones.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Awaitable, Callable, Sequence

from fastapi import Request, Response
from fastapi.responses import JSONResponse

from portfolio_api.core.config import settings
from portfolio_api.core.errors import ForbiddenAppError, RateLimitAppError, ValidationAppError
from portfolio_api.core.headers import STATE_KEY, build_security_headers
from portfolio_api.core.origin import OriginGuard, parse_origins
from portfolio_api.core.rate_limit import (
    LimitClass,
    SecurityDecision,
    SlidingWindowRateLimiter,
    get_rate_limiter,
)
from portfolio_api.schemas.envelope import SuccessEnvelope
from portfolio_api.utils.sanitizer import FieldRule, ValidationResult, validate_fields

logger = logging.getLogger(__name__)


class RequestState(IntEnum):
    """Lifecycle of one request; a request never moves backwards."""

    RECEIVED = 0
    RATE_CHECKED = 1
    ORIGIN_CHECKED = 2
    VALIDATED = 3
    DISPATCHED = 4
    RESPONDED = 5


def get_client_ip(request: Request) -> str:
    """Best-effort client address, honouring the proxy headers.

    Examples:
        ``X-Forwarded-For: 203.0.113.7, 10.0.0.1`` -> ``"203.0.113.7"``
    """

    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


@dataclass
class PipelineContext:
    """Per-request state threaded through the stages."""

    request: Request
    limit_class: LimitClass
    rules: Sequence[FieldRule]
    limiter: SlidingWindowRateLimiter
    guard: OriginGuard
    client_ip: str = "unknown"
    headers: dict[str, str] = field(default_factory=dict)
    body: dict[str, Any] | None = None
    decision: SecurityDecision | None = None
    validation: ValidationResult | None = None
    response: Response | None = None
    state: RequestState = RequestState.RECEIVED
    visited: list[RequestState] = field(default_factory=lambda: [RequestState.RECEIVED])

    def advance(self, state: RequestState) -> None:
        if state <= self.state:
            raise RuntimeError(f"request cannot move from {self.state.name} to {state.name}")
        self.state = state
        self.visited.append(state)

    def add_headers(self, headers: dict[str, str]) -> None:
        self.headers.update(headers)
        setattr(self.request.state, STATE_KEY, dict(self.headers))

    @property
    def fields(self) -> dict[str, str]:
        return self.validation.sanitized_fields if self.validation else {}

    def respond(self, message: str, data: dict[str, Any] | None = None, status_code: int = 200) -> JSONResponse:
        """Render the success envelope with the headers collected so far."""
        envelope = SuccessEnvelope(message=message, data=data or {})
        self.advance(RequestState.RESPONDED)
        return JSONResponse(status_code=status_code, content=envelope.to_wire(), headers=dict(self.headers))


Stage = Callable[[PipelineContext], Awaitable[Response | None]]


async def log_request(ctx: PipelineContext) -> None:
    ctx.client_ip = get_client_ip(ctx.request)
    logger.info(
        "pipeline.received",
        extra={
            "method": ctx.request.method,
            "path": ctx.request.url.path,
            "client_ip": ctx.client_ip,
            "limit_class": ctx.limit_class.value,
        },
    )


async def set_security_headers(ctx: PipelineContext) -> None:
    ctx.add_headers(build_security_headers(ctx.request.headers.get("origin")))


async def handle_preflight(ctx: PipelineContext) -> Response | None:
    if ctx.request.method != "OPTIONS":
        return None
    logger.info("pipeline.preflight", extra={"path": ctx.request.url.path, "client_ip": ctx.client_ip})
    ctx.advance(RequestState.RESPONDED)
    return Response(status_code=204, headers=dict(ctx.headers))


def _check(ctx: PipelineContext, limit_class: LimitClass) -> SecurityDecision:
    decision = ctx.limiter.admit(limit_class, ctx.client_ip)
    if settings.rate_limit.include_headers:
        ctx.add_headers(decision.rate_limit_headers())
    if not decision.admitted:
        raise RateLimitAppError(
            code="rate_limited",
            message=ctx.limiter.config_for(limit_class).message,
            details={
                "limit_class": limit_class.value,
                "limit": decision.limit,
                "violations": decision.violations,
            },
            retry_after_seconds=decision.retry_after_seconds or 1,
        )
    return decision


async def rate_limit(ctx: PipelineContext) -> None:
    """Check the global class, then the endpoint's own class."""

    if settings.rate_limit.enabled:
        _check(ctx, LimitClass.GLOBAL)
        ctx.decision = _check(ctx, ctx.limit_class)
    ctx.advance(RequestState.RATE_CHECKED)


async def origin_check(ctx: PipelineContext) -> None:
    origin = ctx.request.headers.get("origin")
    referer = ctx.request.headers.get("referer")
    reason = ctx.guard.rejection_reason(origin, referer, settings.app.development_mode)
    if reason is not None:
        details = {"reason": reason}
        if origin:
            details["origin"] = origin
        if referer:
            details["referer"] = referer
        raise ForbiddenAppError(
            code="origin_rejected",
            message="Access denied. This endpoint only accepts requests from the portfolio site.",
            details=details,
        )
    ctx.advance(RequestState.ORIGIN_CHECKED)


async def field_validate(ctx: PipelineContext) -> None:
    content_type = ctx.request.headers.get("content-type", "")
    if content_type.split(";")[0].strip().lower() != "application/json":
        raise ValidationAppError(
            code="unsupported_content_type",
            message="Content-Type must be application/json.",
        )

    try:
        body = await ctx.request.json()
    except ValueError as exc:
        raise ValidationAppError(
            code="invalid_json",
            message="Request body must be valid JSON.",
        ) from exc

    if not isinstance(body, dict):
        raise ValidationAppError(
            code="invalid_body",
            message="Request body must be a JSON object.",
        )
    ctx.body = body

    result = validate_fields(ctx.rules, body)
    ctx.validation = result
    if not result.valid:
        raise ValidationAppError(
            code="invalid_fields",
            message=result.errors[0].message,
            details={"fields": [error.as_dict() for error in result.errors]},
        )
    ctx.advance(RequestState.VALIDATED)


DEFAULT_STAGES: tuple[Stage, ...] = (
    log_request,
    set_security_headers,
    handle_preflight,
    rate_limit,
    origin_check,
    field_validate,
)


def default_origin_guard() -> OriginGuard:
    return OriginGuard(parse_origins(settings.app.allowed_origins))


class RequestPipeline:
    """Run the admission stages for one endpoint.

    Args:
        limit_class: Rate limit class of the endpoint.
        rules: Field rules for the endpoint's JSON body.
        stages: Ordered stages; defaults to ``DEFAULT_STAGES``.
        limiter: Rate limiter; defaults to the process-wide instance.
        guard: Origin guard; defaults to one built from settings.
    """

    def __init__(
        self,
        limit_class: LimitClass,
        rules: Sequence[FieldRule],
        *,
        stages: Sequence[Stage] = DEFAULT_STAGES,
        limiter: SlidingWindowRateLimiter | None = None,
        guard: OriginGuard | None = None,
    ) -> None:
        self.limit_class = limit_class
        self.rules = tuple(rules)
        self.stages = tuple(stages)
        self._limiter = limiter
        self._guard = guard

    async def run(self, request: Request) -> PipelineContext:
        """Execute the stages in order.

        Returns:
            The context. ``ctx.response`` is set when a stage answered the
            request itself (preflight); otherwise the request is validated
            and ready for dispatch.

        Raises:
            AppError: When a stage rejects the request.
        """

        ctx = PipelineContext(
            request=request,
            limit_class=self.limit_class,
            rules=self.rules,
            limiter=self._limiter or get_rate_limiter(),
            guard=self._guard or default_origin_guard(),
        )
        for stage in self.stages:
            response = await stage(ctx)
            if response is not None:
                ctx.response = response
                break
        return ctx
