"""ASGI entry point: ``uvicorn creditline.main:app``."""

from creditline.start import create_app
from creditline.utils.logging_config import setup_logging

# Set up logging
setup_logging()

app = create_app()
