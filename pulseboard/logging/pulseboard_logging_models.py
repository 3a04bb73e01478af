from .models import Entry, LogLevel


class AgentDebug(Entry, kw_only=True):
    host: str
    port: int
    pid: int
    level: LogLevel = LogLevel.DEBUG


class AgentInfo(Entry, kw_only=True):
    host: str
    port: int
    pid: int
    level: LogLevel = LogLevel.INFO


class AgentWarn(Entry, kw_only=True):
    host: str
    port: int
    pid: int
    level: LogLevel = LogLevel.WARN


class AgentError(Entry, kw_only=True):
    host: str
    port: int
    pid: int
    error: str
    level: LogLevel = LogLevel.ERROR


class ChannelDebug(Entry, kw_only=True):
    host: str
    port: int
    peers: int
    level: LogLevel = LogLevel.DEBUG


class ChannelInfo(Entry, kw_only=True):
    host: str
    port: int
    peers: int
    level: LogLevel = LogLevel.INFO


class ChannelError(Entry, kw_only=True):
    host: str
    port: int
    error: str
    level: LogLevel = LogLevel.ERROR


class ViewerDebug(Entry, kw_only=True):
    host: str
    port: int
    window_size: int
    level: LogLevel = LogLevel.DEBUG


class ViewerInfo(Entry, kw_only=True):
    host: str
    port: int
    window_size: int
    level: LogLevel = LogLevel.INFO


class ViewerError(Entry, kw_only=True):
    host: str
    port: int
    error: str
    level: LogLevel = LogLevel.ERROR
