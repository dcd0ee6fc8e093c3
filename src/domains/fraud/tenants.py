"""Tenant configuration lookup consumed by the orchestrator (read-only)."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from .config import RiskThresholds
from .models import ModuleType

DEFAULT_ENABLED_MODULES = frozenset({ModuleType.TRANSACTION_SENTINEL})


@dataclass(frozen=True)
class TenantProfile:
    tenant_id: str
    enabled_modules: frozenset[ModuleType] = DEFAULT_ENABLED_MODULES
    thresholds: RiskThresholds = field(default_factory=RiskThresholds)


class TenantDirectory(ABC):
    """Source of per-tenant engine settings. Lookup failures propagate."""

    @abstractmethod
    async def get_profile(self, tenant_id: str) -> TenantProfile:
        """Raise ``TenantLookupError`` when the backing store is unreachable."""

    async def get_enabled_modules(self, tenant_id: str) -> set[ModuleType]:
        profile = await self.get_profile(tenant_id)
        return set(profile.enabled_modules)

    async def get_risk_thresholds(self, tenant_id: str) -> RiskThresholds:
        profile = await self.get_profile(tenant_id)
        return profile.thresholds


class InMemoryTenantDirectory(TenantDirectory):
    """Dictionary-backed directory. Unknown tenants get transaction monitoring only."""

    def __init__(
        self,
        profiles: list[TenantProfile] | None = None,
        default_thresholds: RiskThresholds | None = None,
    ) -> None:
        self._profiles = {p.tenant_id: p for p in profiles or []}
        self._default_thresholds = default_thresholds or RiskThresholds()

    def register(self, profile: TenantProfile) -> None:
        self._profiles[profile.tenant_id] = profile

    async def get_profile(self, tenant_id: str) -> TenantProfile:
        profile = self._profiles.get(tenant_id)
        if profile is None:
            return TenantProfile(tenant_id=tenant_id, thresholds=self._default_thresholds)
        return profile
