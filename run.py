"""
Start the portal API with uvicorn. Host, port and reload come from settings (HOST, PORT, DEBUG).
Usage: python3 run.py   (from the project root)
"""
import uvicorn

from config import settings
from logging_config import setup_logging

if __name__ == "__main__":
    setup_logging(settings.log_level, settings.log_format)
    uvicorn.run("main:app", host=settings.host, port=settings.port, reload=settings.debug, log_config=None)
