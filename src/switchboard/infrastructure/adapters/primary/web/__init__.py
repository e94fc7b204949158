from switchboard.infrastructure.adapters.primary.web.main import create_app

__all__ = ["create_app"]
