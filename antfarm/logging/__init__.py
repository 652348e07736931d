from .log_caller import LogCaller as LogCaller
from .models import (
    Entry as Entry,
    Log as Log,
    LogLevel as LogLevel,
    LogLevelName as LogLevelName,
)
from .streams import Logger as Logger
