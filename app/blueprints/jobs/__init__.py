from .routes import jobs_bp

__all__ = ["jobs_bp"]
