import os
import threading
from dotenv import load_dotenv

load_dotenv()

DEFAULT_GRADE_SCALE = "A:90,B:80,C:70,D:60"


def parse_grade_scale(value: str) -> list[tuple[str, float]]:
    """Parse ``"A:90,B:80"`` into ``[("A", 90.0), ("B", 80.0)]`` ordered by threshold, highest first."""
    scale = []
    for part in value.split(","):
        part = part.strip()
        if not part:
            continue
        label, _, threshold = part.partition(":")
        scale.append((label.strip(), float(threshold)))
    return sorted(scale, key=lambda item: item[1], reverse=True)


class BackendSettings:
    _instance = None
    _lock = threading.Lock()

    def __init__(self):
        self.DEBUG_MODE = os.environ.get("DEBUG_MODE", "development")
        self.LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
        self.DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///./school.db")
        # Session cookie signing
        self.SESSION_SECRET = os.environ.get("SESSION_SECRET", "change-me")
        self.SESSION_COOKIE = os.environ.get("SESSION_COOKIE", "school_session")
        self.SESSION_MAX_AGE = int(os.environ.get("SESSION_MAX_AGE", str(60 * 60 * 24)))
        self.GRADE_SCALE = parse_grade_scale(os.environ.get("GRADE_SCALE", DEFAULT_GRADE_SCALE))
        # Label assigned to a score below every threshold
        self.GRADE_FAIL_LABEL = os.environ.get("GRADE_FAIL_LABEL", "F")
        self.ADMIN_EMAIL = os.environ.get("ADMIN_EMAIL", None)
        self.ADMIN_PASSWORD = os.environ.get("ADMIN_PASSWORD", None)

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super(BackendSettings, cls).__new__(cls)
        return cls._instance

settings = BackendSettings()
