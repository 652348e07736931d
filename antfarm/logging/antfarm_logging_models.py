from typing import ClassVar

from .models import Entry, LogLevel


ANT_TEMPLATE = "{timestamp} - {level} - {caller} - {data_dir}: {message}"
FARM_TEMPLATE = "{timestamp} - {level} - {caller}: {message}"


class AntDebug(Entry, kw_only=True):
    template: ClassVar[str] = ANT_TEMPLATE
    caller: str
    data_dir: str
    level: LogLevel = LogLevel.DEBUG

class AntInfo(Entry, kw_only=True):
    template: ClassVar[str] = ANT_TEMPLATE
    caller: str
    data_dir: str
    level: LogLevel = LogLevel.INFO

class AntError(Entry, kw_only=True):
    template: ClassVar[str] = ANT_TEMPLATE
    caller: str
    data_dir: str
    level: LogLevel = LogLevel.ERROR

class FarmDebug(Entry, kw_only=True):
    template: ClassVar[str] = FARM_TEMPLATE
    caller: str
    level: LogLevel = LogLevel.DEBUG

class FarmInfo(Entry, kw_only=True):
    template: ClassVar[str] = FARM_TEMPLATE
    caller: str
    level: LogLevel = LogLevel.INFO

class FarmError(Entry, kw_only=True):
    template: ClassVar[str] = FARM_TEMPLATE
    caller: str
    level: LogLevel = LogLevel.ERROR
