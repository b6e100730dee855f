from wakecycle.schedulers.base import BaseSelector
from wakecycle.schedulers.readiness import ReadinessSelector

__all__ = ["BaseSelector", "ReadinessSelector"]
