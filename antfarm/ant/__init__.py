from .addrs import get_addrs as get_addrs
from .ant import Ant as Ant
from .client import NodeClient as NodeClient
from .config import NodeConfig as NodeConfig
from .job_runner import JobRunner as JobRunner
from .jobs import JOB_REGISTRY as JOB_REGISTRY
from .models import AntInfo as AntInfo
from .process import NodeProcess as NodeProcess
