# ideaboard/config.py
import os
from dotenv import load_dotenv


load_dotenv()  # Load environment variables from .env file


class Config:
    # General environmental details
    APP_NAME = os.environ.get("APP_NAME", "IdeaBoard")
    SECRET_KEY = os.environ.get("SECRET_KEY", "change_me_in_env")

    # REST backend that owns ideas, comments and reactions
    IDEABOARD_API_URL = os.environ.get("IDEABOARD_API_URL", "http://localhost:3000")
    try:
        IDEABOARD_API_TIMEOUT_SECONDS = max(0.5, float(os.environ.get("IDEABOARD_API_TIMEOUT_SECONDS", "10")))
    except ValueError:
        IDEABOARD_API_TIMEOUT_SECONDS = 10.0

    # The public API has no "my reaction" endpoint; enable only against a backend that serves
    # GET /ideas/<id>/my-reaction. When disabled, reactions are tracked optimistically.
    REACTION_QUERY_ENABLED = os.environ.get("REACTION_QUERY_ENABLED", "false").lower() in {"1", "true", "yes"}

    # Attachment limits
    try:
        MAX_ATTACHMENT_BYTES = max(1, int(os.environ.get("MAX_ATTACHMENT_BYTES", str(5 * 1024 * 1024))))  # 5 MiB
    except ValueError:
        MAX_ATTACHMENT_BYTES = 5 * 1024 * 1024
    try:
        MAX_ATTACHMENTS = max(1, int(os.environ.get("MAX_ATTACHMENTS", "5")))
    except ValueError:
        MAX_ATTACHMENTS = 5
    try:
        MAX_IMAGE_DIMENSION = max(16, int(os.environ.get("MAX_IMAGE_DIMENSION", "1920")))
    except ValueError:
        MAX_IMAGE_DIMENSION = 1920
    try:
        IMAGE_QUALITY = max(0.05, min(1.0, float(os.environ.get("IMAGE_QUALITY", "0.8"))))
    except ValueError:
        IMAGE_QUALITY = 0.8

    # Comma separated list; "*" allows all (dev default)
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")

    # Structured discussion events; empty means stderr only
    EVENT_LOG_PATH = os.environ.get("EVENT_LOG_PATH", "")
