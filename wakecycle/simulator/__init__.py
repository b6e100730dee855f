from wakecycle.simulator.generator import ScenarioGenerator, TaskSpec
from wakecycle.simulator.runner import populate, run_cycles
from wakecycle.simulator.work import SimulatedWork, SimulatedWorkError

__all__ = [
    "ScenarioGenerator", "TaskSpec", "SimulatedWork", "SimulatedWorkError",
    "populate", "run_cycles",
]
