import os
from dotenv import load_dotenv

# Load .env from the backend directory
load_dotenv(os.path.join(os.path.dirname(__file__), "..", "..", ".env"))

SECRET_KEY: str = os.getenv("SECRET_KEY", "lessonhub-dev-secret-change-in-prod")
ALGORITHM: str = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "1440"))  # 24h

# Databases, stored in backend/data/
BASE_DIR = os.path.dirname(os.path.abspath(__file__))
BACKEND_DIR = os.path.abspath(os.path.join(BASE_DIR, "..", ".."))

# Draft Store (drafts, users, audit log)
DATABASE_PATH: str = os.getenv(
    "DATABASE_PATH",
    os.path.join(BACKEND_DIR, "data", "drafts.db"),
)

# Replica Store: a separate database, no transactions span the two
REPLICA_DATABASE_PATH: str = os.getenv(
    "REPLICA_DATABASE_PATH",
    os.path.join(BACKEND_DIR, "data", "replicas.db"),
)

MIGRATIONS_DIR: str = os.path.join(BACKEND_DIR, "migrations")

# Moderation Gate: empty URL selects the built-in keyword gate
MODERATION_URL: str = os.getenv("MODERATION_URL", "")
MODERATION_TIMEOUT_SECONDS: float = float(os.getenv("MODERATION_TIMEOUT_SECONDS", "15"))

# Review
REVIEW_QUEUE_PAGE_SIZE: int = int(os.getenv("REVIEW_QUEUE_PAGE_SIZE", "50"))
REJECT_TARGET_STATE: str = os.getenv("REJECT_TARGET_STATE", "rejected")  # rejected | draft

# Logging
ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
