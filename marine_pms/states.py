"""
Closed enumerations for the plant: unit and node identities plus the
discrete states of generators and breakers.
"""

from enum import Enum


class GeneratorId(str, Enum):
    DG1 = "DG1"
    DG2 = "DG2"
    DG3 = "DG3"
    DG4 = "DG4"
    EMG = "EMG"


class BusId(str, Enum):
    MAIN = "MAIN"
    PORT = "PORT"
    STBD = "STBD"
    EMERGENCY = "EMERGENCY"
    PORT_450 = "PORT_450"
    STBD_450 = "STBD_450"
    EMG_230 = "EMG_230"
    DC_110 = "DC_110"


MAIN_BUSES = (BusId.MAIN, BusId.PORT, BusId.STBD, BusId.EMERGENCY)
SUB_BUSES = (BusId.PORT_450, BusId.STBD_450, BusId.EMG_230, BusId.DC_110)


class TransformerId(str, Enum):
    T1 = "T1"
    T2 = "T2"
    T3 = "T3"
    T4 = "T4"


class ConsumerId(str, Enum):
    THRUSTER_ST = "thruster_st"
    THRUSTER_MT = "thruster_mt"
    THRUSTER_BT = "thruster_bt"
    THRUSTER_AZ = "thruster_az"
    CRANE1 = "crane1"
    CRANE2 = "crane2"
    ROV1 = "rov1"
    ROV2 = "rov2"


class GeneratorState(str, Enum):
    OFF = "OFF"
    PRE_LUBE = "PRE_LUBE"
    CRANKING = "CRANKING"
    IDLE = "IDLE"
    RUNNING = "RUNNING"
    COOL_DOWN = "COOL_DOWN"


class BreakerState(str, Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"
    TRIPPED = "TRIPPED"


class SpeedMode(str, Enum):
    DROOP = "droop"
    ISOCHRONOUS = "isochronous"


class LoadProfile(str, Enum):
    SINUSOIDAL = "sinusoidal"
    STEP = "step"
    CONSTANT = "constant"
