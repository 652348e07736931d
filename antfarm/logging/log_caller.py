from enum import Enum


class LogCaller(Enum):
    """Tags identifying which part of the farm emitted a log line."""

    ANT = "ant"
    ANT_BALANCE_MAINTAINER = "ant > balanceMaintainer"
    ANT_GATEWAY = "ant > gateway"
    ANT_JOB_RUNNER = "ant > jobRunner"
    ANT_MINER = "ant > miner"
    ANTFARM = "antfarm"
