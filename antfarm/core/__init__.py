from .sync_barrier import FleetSyncBarrier as FleetSyncBarrier
from .thread_group import ThreadGroup as ThreadGroup
