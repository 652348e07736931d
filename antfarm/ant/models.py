import msgspec


class AntInfo(msgspec.Struct, kw_only=True):
    """Public fields of an ant, as served by the farm's status surface."""

    name: str
    api_addr: str
    rpc_addr: str
    host_addr: str
    siamux_addr: str
    siamux_ws_addr: str
    data_dir: str
    siad_path: str | None
    jobs: list[str]
    running: bool
