# dailypath/models/enums.py

from enum import Enum

# --- User Related Enums ---

class AppRole(str, Enum):
    """Application-wide role of a user."""
    ADMIN = "admin"
    MANAGER = "manager"
    EMPLOYEE = "employee"

# --- Task Related Enums ---

class TaskStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    BLOCKED = "blocked"
    DONE = "done"

class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

class AssignedToType(str, Enum):
    """Whether a task is assigned to a single user or to a whole department."""
    USER = "user"
    DEPARTMENT = "department"
