from .user import user
from .claim import claim
from .approval import approval

__all__ = ["user", "claim", "approval"]
