from flowboard.models import entities  # noqa: F401
from flowboard.models.base import Base

__all__ = ["Base"]
