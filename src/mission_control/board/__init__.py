"""Task lifecycle and synchronization engine for the board.

``store`` owns the persisted snapshot, ``lifecycle`` holds the transition
rules, ``engine`` runs them inside store commits, and ``activity`` /
``notifications`` are the two append-only trails fed by each mutation.
"""

from .container import BoardContainer
from .engine import BoardEngine
from .model import Snapshot, Task, TaskPriority

__all__ = ["BoardContainer", "BoardEngine", "Snapshot", "Task", "TaskPriority"]
