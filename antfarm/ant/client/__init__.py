from .client import NodeClient as NodeClient
from .models import (
    ChainTip as ChainTip,
    ConsensusInfo as ConsensusInfo,
    GatewayInfo as GatewayInfo,
    MinerInfo as MinerInfo,
    Peer as Peer,
    RenterInfo as RenterInfo,
    RenterSettings as RenterSettings,
    WalletAddress as WalletAddress,
    WalletInfo as WalletInfo,
    WalletInitResponse as WalletInitResponse,
)
