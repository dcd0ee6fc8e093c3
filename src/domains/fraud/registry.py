"""Explicit module registry built once at process startup."""

import random
from collections.abc import Iterable, Iterator

import structlog

from .backend import ScoringBackend
from .config import EngineConfig, default_config
from .modules import MODULE_CLASSES, DetectionModule
from .models import ModuleType

logger = structlog.get_logger()


class ModuleRegistry:
    """Read-only mapping of module type to a constructed module instance."""

    def __init__(self, modules: Iterable[DetectionModule]) -> None:
        self._modules: dict[ModuleType, DetectionModule] = {}
        for module in modules:
            if module.module_type in self._modules:
                raise ValueError(f"Duplicate module registered: {module.module_type.value}")
            self._modules[module.module_type] = module

    def get(self, module_type: ModuleType) -> DetectionModule | None:
        return self._modules.get(module_type)

    def __contains__(self, module_type: object) -> bool:
        return module_type in self._modules

    def __iter__(self) -> Iterator[DetectionModule]:
        return iter(self._modules.values())

    def __len__(self) -> int:
        return len(self._modules)

    @property
    def module_types(self) -> list[ModuleType]:
        return list(self._modules)


def build_registry(
    config: EngineConfig | None = None,
    backend: ScoringBackend | None = None,
    rng: random.Random | None = None,
) -> ModuleRegistry:
    """Construct every known module with its evaluators."""
    cfg = config or default_config
    registry = ModuleRegistry(cls.build(cfg, backend=backend, rng=rng) for cls in MODULE_CLASSES)
    logger.info(
        "module_registry_built",
        modules=[m.value for m in registry.module_types],
        backend_configured=backend is not None,
    )
    return registry
