from .base import Storage
from .memory import MemStorage
from .sql import SqlStorage
