from __future__ import annotations

import secrets

from pydantic import BaseModel, ConfigDict, StrictBool, StrictInt, StrictStr

from .addrs import get_addrs


NUM_ADDRS = 5
LOCAL_HOST = "127.0.0.1"


class NodeConfig(BaseModel):
    """
    Immutable description of one ant's node process.

    ``siad_path`` of None means the node is already running at
    ``api_addr`` and the ant only attaches to it.
    """

    model_config = ConfigDict(frozen=True)

    name: StrictStr = ""
    api_addr: StrictStr = ""
    rpc_addr: StrictStr = ""
    host_addr: StrictStr = ""
    siamux_addr: StrictStr = ""
    siamux_ws_addr: StrictStr = ""
    data_dir: StrictStr
    siad_path: StrictStr | None = "siad"
    api_password: StrictStr | None = None
    jobs: tuple[StrictStr, ...] = ()
    desired_currency: StrictInt = 0
    allow_host_local_net_address: StrictBool = False
    renter_disable_ip_violation_check: StrictBool = False
    wallet_seed: StrictStr | None = None

    @property
    def attached(self) -> bool:
        return self.siad_path is None

    def with_defaults(self) -> NodeConfig:
        """
        Return a copy with every empty address bound to a free local port
        and an API password generated when none was given.
        """
        updates: dict[str, str] = {}
        fields = ["api_addr", "rpc_addr", "host_addr", "siamux_addr", "siamux_ws_addr"]
        missing = [field for field in fields if not getattr(self, field)]

        if missing:
            addrs = get_addrs(len(missing))
            for field, addr in zip(missing, addrs):
                updates[field] = f"{LOCAL_HOST}{addr}"

        if self.api_password is None and not self.attached:
            updates["api_password"] = secrets.token_hex(16)

        if not self.name:
            updates["name"] = self.data_dir

        if not updates:
            return self

        return self.model_copy(update=updates)
