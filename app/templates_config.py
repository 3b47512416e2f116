"""
Template configuration for the application.
Separate module to avoid circular imports.

Holds both the HTML pages served by the verification endpoint and the
bodies of outgoing emails (under ``email/``).
"""
from pathlib import Path
from fastapi.templating import Jinja2Templates

TEMPLATES_DIR = Path(__file__).parent / "templates"
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
