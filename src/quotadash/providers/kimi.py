"""Kimi coding-plan usage provider."""

import asyncio
import logging
from collections.abc import Sequence
from pathlib import Path

import httpx

from quotadash.models import Provider, QueryFailure, QueryResult, QuerySuccess
from quotadash.providers.common import bar, format_reset, skipped, unavailable
from quotadash.providers.credentials import entry_token, first_env, load_auth_entry

logger = logging.getLogger(__name__)

KIMI_USAGE_API = "https://www.kimi.com/apiv2/kimi.gateway.billing.v1.BillingService/GetUsages"
KIMI_TIMEOUT = 12.0
TOKEN_ENV_VARS = ("KIMI_AUTH_TOKEN", "KIMI_API_TOKEN", "MOONSHOT_API_TOKEN")
AUTH_ENTRY_NAMES = ("kimi", "moonshot", "moonshotai")
CODING_SCOPE = "FEATURE_CODING"


def load_kimi_token(auth_paths: Sequence[Path] | None = None) -> str | None:
    token = first_env(TOKEN_ENV_VARS)
    if token:
        return token
    for name in AUTH_ENTRY_NAMES:
        token = entry_token(load_auth_entry(name, auth_paths))
        if token:
            return token
    return None


def _to_int(value) -> int:
    try:
        return int(str(value))
    except ValueError:
        return 0


def _percent(remaining: int, limit: int) -> int:
    return int(remaining / limit * 100 + 0.5) if limit > 0 else 0


def format_kimi_usage(data: dict) -> str:
    """Format a GetUsages response body."""
    usages = data.get("usages") or []
    coding = next((item for item in usages if item.get("scope") == CODING_SCOPE), None)
    if coding is None:
        return unavailable(f"no {CODING_SCOPE} usage in response")

    weekly = coding.get("detail") or {}
    limit = _to_int(weekly.get("limit", 0))
    used = _to_int(weekly.get("used", 0))
    percent = _percent(_to_int(weekly.get("remaining", 0)), limit)
    reset_time = str(weekly.get("resetTime", ""))

    lines = [
        "Provider     Kimi",
        "",
        f"Weekly       {bar(percent)} {percent}% remaining ({used}/{limit})",
        f"WeeklyReset  {format_reset(reset_time)} ({reset_time})",
    ]

    limits = coding.get("limits") or []
    if limits:
        rate = limits[0]
        window = rate.get("window") or {}
        detail = rate.get("detail") or {}
        rate_limit = _to_int(detail.get("limit", 0))
        rate_percent = _percent(_to_int(detail.get("remaining", 0)), rate_limit)
        label = f"Rate {window.get('duration', '?')}m"
        rate_reset = str(detail.get("resetTime", ""))
        lines.append("")
        lines.append(
            f"{label:<13}{bar(rate_percent)} {rate_percent}% remaining "
            f"({_to_int(detail.get('used', 0))}/{rate_limit})"
        )
        lines.append(f"RateReset    {format_reset(rate_reset)} ({rate_reset})")

    return "\n".join(lines)


async def query_kimi_usage(
    client: httpx.AsyncClient | None = None,
    token: str | None = None,
) -> QueryResult:
    token = token or await asyncio.to_thread(load_kimi_token)
    if not token:
        return QuerySuccess(output=skipped("set KIMI_AUTH_TOKEN or MOONSHOT_API_TOKEN"))

    headers = {
        "Authorization": token if token.startswith("Bearer ") else f"Bearer {token}",
        "Accept": "application/json",
    }
    owns_client = client is None
    client = client or httpx.AsyncClient(timeout=KIMI_TIMEOUT)
    try:
        response = await client.post(KIMI_USAGE_API, headers=headers, json={"scope": [CODING_SCOPE]})
    except httpx.TimeoutException:
        return QueryFailure(error=f"Kimi API timed out after {KIMI_TIMEOUT:g}s")
    except httpx.HTTPError as exc:
        return QueryFailure(error=str(exc) or type(exc).__name__)
    finally:
        if owns_client:
            await client.aclose()

    if response.status_code == 401:
        return QuerySuccess(output=unavailable("token unauthorized/expired"))
    if response.is_error:
        return QueryFailure(error=f"Kimi API error {response.status_code}: {response.text[:240]}")

    try:
        data = response.json()
    except ValueError as exc:
        logger.debug("kimi returned non-JSON body: %s", exc)
        return QueryFailure(error="Kimi API returned invalid JSON")
    return QuerySuccess(output=format_kimi_usage(data if isinstance(data, dict) else {}))


kimi_provider = Provider(id="kimi", label="Kimi", query=query_kimi_usage)
