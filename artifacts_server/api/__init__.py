from artifacts_server.api.routes import build_store, create_app

__all__ = ["build_store", "create_app"]
