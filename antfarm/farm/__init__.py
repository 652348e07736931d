from .antfarm import Antfarm as Antfarm
from .antfarm import ant_consensus_groups as ant_consensus_groups
from .config import AntfarmConfig as AntfarmConfig
from .config import Topology as Topology
