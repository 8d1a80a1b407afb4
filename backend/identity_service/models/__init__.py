from identity_service.models.user import User

__all__ = ["User"]
