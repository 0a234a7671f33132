"""FastAPI route definitions.

Endpoints:
- GET /health   : Simple liveness check
- GET /metrics  : Prometheus metrics
- POST /webhook : GitHub pull_request webhook, runs the suggestion pipeline

Auth: when WEBHOOK_SECRET is set every delivery must carry a valid
``X-Hub-Signature-256`` header.
"""
from __future__ import annotations

import hashlib
import hmac
import json
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from suggester.bootstrap import AppContext, get_context
from suggester.classifier import EntryClassifier
from suggester.errors import EventValidationError, GatewayError, RepositoryError
from suggester.event import pull_request_from_event, repository_from_event
from suggester.github import GitHubGateway
from suggester.pipeline import suggest_changelog

router = APIRouter()


def verify_signature(secret: str, body: bytes, header: Optional[str]) -> bool:
    if not header or not header.startswith("sha256="):
        return False
    expected = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, header[len("sha256="):])


@router.get("/health")
async def health(ctx: AppContext = Depends(get_context)):
    return {
        "status": "ok",
        "model": ctx.settings.model,
        "changelog_path": ctx.settings.changelog_path,
        "branch_suggestions": ctx.settings.branch_suggestions,
    }


@router.get("/metrics")
async def metrics(ctx: AppContext = Depends(get_context)):
    if not ctx.settings.enable_metrics:
        return Response(status_code=404)
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@router.post("/webhook")
async def webhook(request: Request, ctx: AppContext = Depends(get_context)):
    body = await request.body()
    settings = ctx.settings
    logger = ctx.logger.bind(component="webhook")

    if settings.webhook_secret and not verify_signature(
        settings.webhook_secret, body, request.headers.get("X-Hub-Signature-256")
    ):
        logger.warning("webhook_signature_invalid")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid signature")

    event_name = request.headers.get("X-GitHub-Event")
    if event_name == "ping":
        return {"status": "pong"}

    try:
        payload: Any = json.loads(body or b"{}")
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Body is not valid JSON")
    if not isinstance(payload, dict):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Body must be a JSON object")

    try:
        pr = pull_request_from_event(event_name, payload)
    except EventValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

    action = str(payload.get("action") or "").lower()
    if action not in settings.trigger_actions:
        logger.info("webhook_action_ignored", action=action, pr=pr.number)
        return {"status": "ignored", "action": action}

    repository = repository_from_event(payload, settings.github_repository)
    try:
        async with GitHubGateway.from_settings(settings, repository, ctx.transport) as gateway, \
                EntryClassifier.from_settings(settings, ctx.transport) as classifier:
            result = await suggest_changelog(
                pr,
                gateway,
                classifier,
                changelog_path=settings.changelog_path,
                branch_suggestions=settings.branch_suggestions,
                logger=logger,
            )
    except RepositoryError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except GatewayError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))
    return result.to_dict()
