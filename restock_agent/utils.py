"""
Utility functions shared by the backend and the core
"""
import logging


def configure_logging(level: str = "INFO"):
    """Root handler for the process; safe to call more than once"""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
