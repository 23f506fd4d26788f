"""Shared HTTP helpers used by the registry and vulnerability-feed clients.

Encapsulates timeout, retry and error handling so callers only see a
``(status_code, headers, body)`` tuple. Transport failures are reported as
status 0 and never raise: upstream unavailability is "no data", not a
failure of the enclosing call.
"""
from __future__ import annotations

import json
import logging
import time
from typing import Any, Dict, Optional, Tuple

import requests

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)


def _default_headers(headers: Optional[Dict[str, str]]) -> Dict[str, str]:
    merged = {"User-Agent": Constants.USER_AGENT}
    if headers:
        merged.update(headers)
    return merged


def _request(
    method: str,
    url: str,
    *,
    session: Optional[requests.Session] = None,
    headers: Optional[Dict[str, str]] = None,
    **kwargs: Any,
) -> Tuple[int, Dict[str, str], str]:
    """Issue a request with retries on transport errors and 5xx responses."""
    safe_target = safe_url(url)
    sender = session if session is not None else requests
    last_exception: Optional[str] = None

    for attempt in range(Constants.HTTP_RETRY_MAX):
        if attempt:
            time.sleep(Constants.HTTP_RETRY_BASE_DELAY_SEC * (2 ** (attempt - 1)))
        with Timer() as t:
            try:
                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP request",
                        extra=extra_context(
                            event="http_request",
                            component="http_client",
                            action=method,
                            target=safe_target,
                            attempt=attempt + 1,
                        ),
                    )
                response = sender.request(
                    method,
                    url,
                    timeout=Constants.REQUEST_TIMEOUT,
                    headers=_default_headers(headers),
                    **kwargs,
                )
            except requests.Timeout:
                last_exception = "timeout"
                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP timeout",
                        extra=extra_context(
                            event="http_exception",
                            component="http_client",
                            action=method,
                            outcome="timeout",
                            attempt=attempt + 1,
                            target=safe_target,
                        ),
                    )
                continue
            except requests.RequestException as exc:  # includes ConnectionError
                last_exception = str(exc)
                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP request exception",
                        extra=extra_context(
                            event="http_exception",
                            component="http_client",
                            action=method,
                            outcome="request_exception",
                            attempt=attempt + 1,
                            target=safe_target,
                        ),
                    )
                continue

        if response.status_code >= 500:
            last_exception = f"HTTP {response.status_code}"
            continue

        if is_debug_enabled(logger):
            logger.debug(
                "HTTP response",
                extra=extra_context(
                    event="http_response",
                    component="http_client",
                    action=method,
                    outcome="success" if response.status_code < 400 else "handled_non_2xx",
                    status_code=response.status_code,
                    duration_ms=t.duration_ms(),
                    target=safe_target,
                ),
            )
        return response.status_code, dict(response.headers), response.text

    logger.warning(
        "%s %s failed after %s attempts: %s",
        method,
        safe_target,
        Constants.HTTP_RETRY_MAX,
        last_exception,
    )
    return 0, {}, ""


def robust_get(
    url: str,
    *,
    session: Optional[requests.Session] = None,
    headers: Optional[Dict[str, str]] = None,
    **kwargs: Any,
) -> Tuple[int, Dict[str, str], str]:
    """Perform a GET with timeout and retries.

    Returns:
        Tuple of (status_code, headers_dict, text); status 0 when every attempt
        failed at the transport level.
    """
    return _request("GET", url, session=session, headers=headers, **kwargs)


def _decode_json(status_code: int, text: str, url: str) -> Optional[Any]:
    if status_code != 200 or not text:
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        if is_debug_enabled(logger):
            logger.debug(
                "JSON decode error",
                extra=extra_context(
                    event="parse",
                    component="http_client",
                    action="decode_json",
                    outcome="json_decode_error",
                    status_code=status_code,
                    target=safe_url(url),
                ),
            )
        return None


def get_json(
    url: str,
    *,
    session: Optional[requests.Session] = None,
    headers: Optional[Dict[str, str]] = None,
    **kwargs: Any,
) -> Tuple[int, Dict[str, str], Optional[Any]]:
    """Perform a GET and parse the JSON body.

    Args:
        url: Target URL
        session: Optional requests session to reuse connections
        headers: Optional request headers
        **kwargs: Additional request parameters (e.g. ``params``)

    Returns:
        Tuple of (status_code, headers_dict, parsed_json_or_none)
    """
    merged = {"Accept": "application/json"}
    if headers:
        merged.update(headers)
    status_code, response_headers, text = robust_get(url, session=session, headers=merged, **kwargs)
    return status_code, response_headers, _decode_json(status_code, text, url)


def post_json(
    url: str,
    payload: Any,
    *,
    session: Optional[requests.Session] = None,
    headers: Optional[Dict[str, str]] = None,
) -> Tuple[int, Dict[str, str], Optional[Any]]:
    """POST a JSON payload and parse the JSON reply.

    Returns:
        Tuple of (status_code, headers_dict, parsed_json_or_none)
    """
    merged = {"Content-Type": "application/json", "Accept": "application/json"}
    if headers:
        merged.update(headers)
    status_code, response_headers, text = _request(
        "POST", url, session=session, headers=merged, data=json.dumps(payload)
    )
    return status_code, response_headers, _decode_json(status_code, text, url)
