from wakecycle.coordinator.scheduler import CognitiveScheduler

__all__ = ["CognitiveScheduler"]
