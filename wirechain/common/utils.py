import uuid
from pathlib import Path


def generate_call_id() -> str:
    """Generate a new call ID for request tracing."""
    return uuid.uuid4().hex


def get_app_dir() -> Path:
    return Path.home() / '.wirechain'
