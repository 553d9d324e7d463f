from .models import Visit
from .repositories import VisitRepository
from .services import record_visit

__all__ = ["Visit", "VisitRepository", "record_visit"]
