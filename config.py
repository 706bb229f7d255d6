import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Paths
BASE_DIR = Path(__file__).parent

# Site metadata
SITE_TITLE = os.getenv("SITE_TITLE", "Vīgintī Trēs in Scriptura")
SITE_DESCRIPTION = os.getenv(
    "SITE_DESCRIPTION",
    "A fragmentary exploration of thought, where words dance between reality and imagination.",
)

# Auth / session
SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-change-me")
FIREBASE_API_KEY = os.getenv("FIREBASE_API_KEY", "")
FIREBASE_DATABASE_URL = os.getenv("FIREBASE_DATABASE_URL", "")

# Blob storage (S3-compatible)
BLOB_ENDPOINT = os.getenv("BLOB_ENDPOINT", "")
BLOB_BUCKET = os.getenv("BLOB_BUCKET", "")
BLOB_ACCESS_KEY_ID = os.getenv("BLOB_ACCESS_KEY_ID", "")
BLOB_SECRET_ACCESS_KEY = os.getenv("BLOB_SECRET_ACCESS_KEY", "")
BLOB_PUBLIC_BASE = os.getenv("BLOB_PUBLIC_BASE", "")

# Image optimization endpoint; empty disables it
IMAGE_OPTIMIZER_URL = os.getenv("IMAGE_OPTIMIZER_URL", "")
IMAGE_OPTIMIZER_TIMEOUT = float(os.getenv("IMAGE_OPTIMIZER_TIMEOUT", "30"))

HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", "15"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
