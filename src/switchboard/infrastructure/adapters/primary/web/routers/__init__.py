from switchboard.infrastructure.adapters.primary.web.routers import chat, health, messages

__all__ = ["chat", "health", "messages"]
