from .context import UserContext

__all__ = ["UserContext"]
