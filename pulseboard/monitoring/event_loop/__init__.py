from .monitor import EventLoopMonitor as EventLoopMonitor
