from wakecycle.guard.resource_guard import (
    GuardAction,
    LoadSampler,
    PsutilSampler,
    ResourceCheck,
    ResourceGuard,
    ResourceSample,
    StaticSampler,
)

__all__ = [
    "GuardAction", "LoadSampler", "PsutilSampler", "ResourceCheck",
    "ResourceGuard", "ResourceSample", "StaticSampler",
]
