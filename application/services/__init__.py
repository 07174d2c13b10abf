from .conversion_service import derive
from .rates_controller import RatesController
from .recompute_scheduler import RecomputeScheduler, SchedulerPhase
from .state import RatesState

__all__ = ['derive', 'RatesController', 'RecomputeScheduler', 'SchedulerPhase', 'RatesState']
