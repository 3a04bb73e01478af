from .reader import read_memory as read_memory
