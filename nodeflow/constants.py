"""Shared constants for nodeflow."""

DEFAULT_MIN_WORDS = 200
DEFAULT_MAX_WORDS = 300

DEFAULT_TOP_K = 3
MAX_CONVERSATION_MESSAGES = 20

# Text shorter than this that reads like a question is not stored.
QUESTION_SKIP_MAX_LENGTH = 100

MAX_UPLOAD_BYTES = 10 * 1024 * 1024
ALLOWED_UPLOAD_EXTENSIONS = (".txt",)
ALLOWED_UPLOAD_CONTENT_TYPES = ("text/plain",)

DEFAULT_LLM_TIMEOUT = 60.0
