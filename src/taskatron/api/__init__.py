from .server import create_app, run_api

__all__ = ["create_app", "run_api"]
