from .balance_maintainer import BalanceMaintainer as BalanceMaintainer
from .balance_maintainer import (
    BalanceMaintainerStateMachine as BalanceMaintainerStateMachine,
)
from .balance_maintainer import MinerAction as MinerAction
from .balance_maintainer import MinerState as MinerState
from .gateway import GatewayConnectability as GatewayConnectability
from .miner import Miner as Miner


JOB_REGISTRY = {
    "balance": BalanceMaintainer,
    "gateway": GatewayConnectability,
    "miner": Miner,
}
