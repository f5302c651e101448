"""
Worker module.
Contains the claim/supervise loop and the handler registry.
"""

from jobqueue.worker.handlers import JobHandler, get_handler, register_handler
from jobqueue.worker.main import Worker, run

__all__ = ["Worker", "run", "JobHandler", "register_handler", "get_handler"]
