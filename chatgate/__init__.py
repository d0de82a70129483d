"""Chat service backend: API gateway, chat room, admin store and JWT algorithms."""

__version__ = "0.1.0"
__all__ = ["gateway", "admin", "chat_room", "jwt_algorithm"]