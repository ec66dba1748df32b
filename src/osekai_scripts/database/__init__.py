from osekai_scripts.database.connection import connect_pool
from osekai_scripts.database.reader import StateReader
from osekai_scripts.database.writer import StateWriter

__all__ = ["StateReader", "StateWriter", "connect_pool"]
