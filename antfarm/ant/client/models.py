import msgspec


class WalletInfo(msgspec.Struct, kw_only=True):
    encrypted: bool = False
    unlocked: bool = False
    rescanning: bool = False
    confirmedsiacoinbalance: str = "0"
    unconfirmedoutgoingsiacoins: str = "0"
    unconfirmedincomingsiacoins: str = "0"

    @property
    def confirmed_balance(self) -> int:
        return int(self.confirmedsiacoinbalance)


class WalletInitResponse(msgspec.Struct, kw_only=True):
    primaryseed: str


class WalletAddress(msgspec.Struct, kw_only=True):
    address: str


class MinerInfo(msgspec.Struct, kw_only=True):
    blocksmined: int = 0
    cpuhashrate: int = 0
    cpumining: bool = False
    staleblocksmined: int = 0


class Peer(msgspec.Struct, kw_only=True):
    netaddress: str
    inbound: bool = False
    local: bool = False
    version: str = ""


class GatewayInfo(msgspec.Struct, kw_only=True):
    netaddress: str = ""
    peers: list[Peer] = msgspec.field(default_factory=list)

    def has_peer(self, netaddress: str) -> bool:
        return any(peer.netaddress == netaddress for peer in self.peers)


class ConsensusInfo(msgspec.Struct, kw_only=True):
    synced: bool = False
    height: int
    currentblock: str
    target: list[int] | str | None = None


class ChainTip(msgspec.Struct, frozen=True):
    """The (height, block id) pair ants are grouped by."""

    height: int
    block_id: str


class RenterSettings(msgspec.Struct, kw_only=True):
    ipviolationcheck: bool = True


class RenterInfo(msgspec.Struct, kw_only=True):
    settings: RenterSettings = msgspec.field(default_factory=RenterSettings)
