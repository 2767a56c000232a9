"""Quota collaborator interface and simple implementations."""

import asyncio
import math
from abc import ABC, abstractmethod

from pydantic import BaseModel

from creatorgate.exceptions import QuotaExceededError


class QuotaUsage(BaseModel):
    """Usage after a successful quota check; limit 0 means unlimited."""

    limit: int
    used: int
    remaining: float


class QuotaService(ABC):
    """Authorizes an operation before any upstream call is made."""

    @abstractmethod
    async def ensure_quota(self, account_id: str, feature_key: str, amount: int = 1) -> QuotaUsage:
        """
        Charge ``amount`` units of ``feature_key`` to the account.

        Raises:
            QuotaExceededError: The charge would exceed the account's limit
        """
        ...


class UnlimitedQuota(QuotaService):
    """Never denies; used when no quota service is wired in."""

    async def ensure_quota(self, account_id: str, feature_key: str, amount: int = 1) -> QuotaUsage:
        return QuotaUsage(limit=0, used=0, remaining=math.inf)


class InMemoryQuota(QuotaService):
    """
    Per-process quota keyed by (account, feature).

    A feature with no configured limit, or a limit of 0, is unlimited.

    Example:
        quota = InMemoryQuota({"profile_report": 100})
        await quota.ensure_quota("acct-1", "profile_report")
    """

    def __init__(self, limits: dict[str, int] | None = None, used: dict[tuple[str, str], int] | None = None):
        self.limits = dict(limits or {})
        self._used: dict[tuple[str, str], int] = dict(used or {})
        self._lock = asyncio.Lock()

    def used(self, account_id: str, feature_key: str) -> int:
        return self._used.get((account_id, feature_key), 0)

    async def ensure_quota(self, account_id: str, feature_key: str, amount: int = 1) -> QuotaUsage:
        async with self._lock:
            key = (account_id, feature_key)
            used = self._used.get(key, 0)
            limit = self.limits.get(feature_key) or 0

            if limit == 0:
                self._used[key] = used + amount
                return QuotaUsage(limit=0, used=used + amount, remaining=math.inf)

            if used + amount > limit:
                raise QuotaExceededError(
                    feature_key,
                    limit=limit,
                    used=used,
                    requested=amount,
                    remaining=max(limit - used, 0),
                )

            self._used[key] = used + amount
            return QuotaUsage(limit=limit, used=used + amount, remaining=limit - used - amount)
