from codearena.models.user import User

__all__ = ["User"]
