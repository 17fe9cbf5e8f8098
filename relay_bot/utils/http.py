from __future__ import annotations

from typing import Any

import requests  # type: ignore[import-untyped]

from relay_bot.utils.logging import get_logger

log = get_logger(__name__)


def error_text(resp: requests.Response) -> str:
    """Best human-readable error for a failed provider response."""
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        msg = body.get("message") or body.get("error")
        if isinstance(msg, dict):
            msg = msg.get("message")
        if msg:
            return str(msg)
    return resp.text or resp.reason or f"HTTP {resp.status_code}"


def _json_or_error(resp: requests.Response, operation: str) -> tuple[dict | None, str | None]:
    if not resp.ok:
        err = error_text(resp)
        log.error(
            "http_request_failed",
            extra={
                "extra_fields": {
                    "operation": operation,
                    "status": resp.status_code,
                    "error": err[:200],
                }
            },
        )
        return None, err
    try:
        return resp.json(), None
    except ValueError as exc:
        return None, f"invalid JSON response: {exc}"


def post_json(
    url: str,
    payload: dict[str, Any],
    headers: dict[str, str] | None = None,
    timeout: int = 60,
    operation: str = "http_post_json",
) -> tuple[dict | None, str | None]:
    try:
        resp = requests.post(url, json=payload, headers=headers, timeout=timeout)
    except requests.exceptions.RequestException as exc:
        log.error("http_request_failed", extra={"extra_fields": {"operation": operation, "error": str(exc)[:200]}})
        return None, str(exc)
    return _json_or_error(resp, operation)


def post_multipart(
    url: str,
    data: dict[str, str],
    files: dict[str, Any],
    headers: dict[str, str] | None = None,
    timeout: int = 120,
    operation: str = "http_post_multipart",
) -> tuple[dict | None, str | None]:
    try:
        resp = requests.post(url, data=data, files=files, headers=headers, timeout=timeout)
    except requests.exceptions.RequestException as exc:
        log.error("http_request_failed", extra={"extra_fields": {"operation": operation, "error": str(exc)[:200]}})
        return None, str(exc)
    return _json_or_error(resp, operation)


def get_bytes(
    url: str,
    headers: dict[str, str] | None = None,
    timeout: int = 60,
) -> tuple[bytes | None, str | None]:
    try:
        resp = requests.get(url, headers=headers, timeout=timeout)
        resp.raise_for_status()
        return resp.content, None
    except requests.exceptions.RequestException as exc:
        log.error(
            "http_download_failed",
            extra={"extra_fields": {"operation": "http_get_bytes", "error": str(exc)[:200]}},
        )
        return None, str(exc)


__all__ = ["error_text", "get_bytes", "post_json", "post_multipart"]
