"""
Bundled providers.

Each provider is a Provider descriptor whose query coroutine bounds its own
latency and reports through the shared text contract: blocks of lines, soft
failures containing 'skipped', hard failures containing 'unavailable', and
quota levels written as '<n>% remaining'.
"""

from quotadash.models import Provider
from quotadash.providers.amp import amp_provider
from quotadash.providers.host import host_provider
from quotadash.providers.kimi import kimi_provider

__all__ = ["amp_provider", "default_providers", "host_provider", "kimi_provider"]


def default_providers() -> list[Provider]:
    """Provider registry in display order."""
    return [host_provider, amp_provider, kimi_provider]
