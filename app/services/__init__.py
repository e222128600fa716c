from . import jobs, pipeline, state

__all__ = [
    "jobs",
    "pipeline",
    "state",
]
