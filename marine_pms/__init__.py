"""
Marine power plant operator trainer: simulation engine.

Multi-generator shipboard plant with governor and AVR control,
synchronisation, protection, blackout recovery and a segmented
switchboard, advanced in fixed deterministic steps.
"""

from .alerts import Alert, AlertLog, Severity
from .engine import PlantEngine
from .settings import PlantSettings
from .snapshot import PlantSnapshot
from .states import (BreakerState, BusId, ConsumerId, GeneratorId, GeneratorState,
                     SpeedMode, TransformerId)
from .synchronization import SyncResult, SyncSeverity, check_sync

__version__ = "0.1.0"

__all__ = ['Alert', 'AlertLog', 'Severity', 'PlantEngine', 'PlantSettings', 'PlantSnapshot',
           'BreakerState', 'BusId', 'ConsumerId', 'GeneratorId', 'GeneratorState',
           'SpeedMode', 'TransformerId', 'SyncResult', 'SyncSeverity', 'check_sync']
