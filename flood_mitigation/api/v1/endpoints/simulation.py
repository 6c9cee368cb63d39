import logging

from fastapi import APIRouter, Depends

from flood_mitigation.api import deps
from flood_mitigation.schemas.simulation import ScenarioRequest, SimulationStatus
from flood_mitigation.services.publisher import SimulationRunner

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/state", response_model=SimulationStatus)
def get_simulation_state(runner: SimulationRunner = Depends(deps.get_runner)):
    """
    Current simulator state, scenario mode and timer periods.
    """
    return runner.snapshot()


@router.put("/scenario", response_model=SimulationStatus)
def set_scenario(
    request: ScenarioRequest, runner: SimulationRunner = Depends(deps.get_runner)
):
    """
    Switch the scenario mode.

    Entering `flood` restarts the escalation ramp from step 0.
    """
    runner.set_mode(request.mode)
    return runner.snapshot()


@router.post("/reset", response_model=SimulationStatus)
def reset_simulation(runner: SimulationRunner = Depends(deps.get_runner)):
    """
    Restore the initial readings and return to normal mode.
    """
    runner.reset()
    return runner.snapshot()
