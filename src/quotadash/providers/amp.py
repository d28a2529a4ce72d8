"""Amp usage provider, reading the output of the `amp usage` CLI."""

import asyncio
import logging
import re
from dataclasses import dataclass

from quotadash.models import Provider, QueryFailure, QueryResult, QuerySuccess
from quotadash.providers.common import bar, skipped

logger = logging.getLogger(__name__)

AMP_COMMAND = ("amp", "usage")
AMP_TIMEOUT = 10.0

_SIGNED_IN = re.compile(r"Signed in as\s+(\S+)\s+\(([^)]+)\)", re.IGNORECASE)
_FREE = re.compile(r"Amp Free:\s*\$([\d.]+)/\$([\d.]+)", re.IGNORECASE)
_REPLENISH = re.compile(r"replenishes\s+\+\$([\d.]+)/hour", re.IGNORECASE)
_BONUS = re.compile(r"\[(.+?)\]")
_CREDITS = re.compile(r"Individual credits:\s*\$([\d.]+)", re.IGNORECASE)
_LOGGED_OUT = re.compile(r"not logged in|login required|unauthorized", re.IGNORECASE)


class AmpNotLoggedIn(Exception):
    """Raised when `amp usage` output has no signed-in account."""


@dataclass(slots=True, frozen=True)
class AmpUsage:
    """Parsed `amp usage` output."""

    email: str
    nickname: str
    free_remaining: float
    free_total: float
    replenish_rate: str | None
    bonus: str | None
    credits: float


def _find_line(lines: list[str], needle: str) -> str:
    return next((line for line in lines if needle in line), "")


def parse_amp_usage(output: str) -> AmpUsage:
    """Parse `amp usage` text into an AmpUsage."""
    lines = output.strip().split("\n")
    signed_in = _SIGNED_IN.search(lines[0] if lines else "")
    if not signed_in:
        raise AmpNotLoggedIn("Not logged in. Run `amp login` first.")

    free_line = _find_line(lines, "Amp Free:")
    free = _FREE.search(free_line)
    replenish = _REPLENISH.search(free_line)
    bonus = _BONUS.search(free_line)
    credits = _CREDITS.search(_find_line(lines, "Individual credits:"))

    return AmpUsage(
        email=signed_in.group(1),
        nickname=signed_in.group(2),
        free_remaining=float(free.group(1)) if free else 0.0,
        free_total=float(free.group(2)) if free else 0.0,
        replenish_rate=f"${replenish.group(1)}/hour" if replenish else None,
        bonus=bonus.group(1) if bonus else None,
        credits=float(credits.group(1)) if credits else 0.0,
    )


def _money(value: float) -> str:
    return f"${value:g}"


def format_amp_usage(usage: AmpUsage) -> str:
    percent = 0
    if usage.free_total > 0:
        percent = int(max(0.0, min(100.0, usage.free_remaining / usage.free_total * 100)) + 0.5)

    lines = [
        f"Account      {usage.email}",
        f"Profile      {usage.nickname}",
        "",
        f"Amp Free     {bar(percent, 24)} {percent}% remaining "
        f"({_money(usage.free_remaining)}/{_money(usage.free_total)})",
    ]
    if usage.replenish_rate:
        lines.append(f"Replenish    {usage.replenish_rate}")
    if usage.bonus:
        lines.append(f"Bonus        {usage.bonus}")
    lines.append(f"Credits      {_money(usage.credits)} remaining")
    return "\n".join(lines)


async def _run_amp() -> tuple[int, str]:
    process = await asyncio.create_subprocess_exec(
        *AMP_COMMAND,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=AMP_TIMEOUT)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        raise
    merged = f"{stdout.decode(errors='replace')}\n{stderr.decode(errors='replace')}".strip()
    return process.returncode, merged


async def query_amp_usage() -> QueryResult:
    try:
        returncode, merged = await _run_amp()
    except FileNotFoundError:
        return QuerySuccess(output=skipped("Amp CLI not found in PATH"))
    except asyncio.TimeoutError:
        return QueryFailure(error=f"`amp usage` timed out after {AMP_TIMEOUT:g}s")
    except OSError as exc:
        logger.debug("amp usage failed: %s", exc)
        return QueryFailure(error=str(exc))

    if returncode != 0:
        if _LOGGED_OUT.search(merged):
            return QuerySuccess(output=skipped("not logged in, run `amp login`"))
        return QueryFailure(error=merged or f"`amp usage` exited with status {returncode}")
    if not merged:
        return QuerySuccess(output=skipped("empty response from `amp usage`"))
    if _LOGGED_OUT.search(merged) and not _SIGNED_IN.search(merged):
        return QuerySuccess(output=skipped("not logged in, run `amp login`"))

    try:
        usage = parse_amp_usage(merged)
    except AmpNotLoggedIn:
        return QuerySuccess(output=skipped("not logged in, run `amp login`"))
    return QuerySuccess(output=format_amp_usage(usage))


amp_provider = Provider(id="amp", label="Amp", query=query_amp_usage)
