from typing import Literal

from pydantic import BaseModel, ConfigDict, StrictBool, StrictStr

from antfarm.ant.config import NodeConfig


Topology = Literal["hub", "mesh"]


class AntfarmConfig(BaseModel):
    """
    Fleet layout fixed at construction.

    ``auto_connect`` wires the ants' gateways together once they are all
    started. ``wait_for_sync`` holds the sync barrier until every ant
    reports the same chain tip.
    """

    model_config = ConfigDict(frozen=True)

    data_dir: StrictStr = ""
    ant_configs: tuple[NodeConfig, ...] = ()
    auto_connect: StrictBool = True
    topology: Topology = "hub"
    wait_for_sync: StrictBool = False
