# Application Configuration
import os


def _split(value):
    return [item.strip() for item in value.split(",") if item.strip()]


class Config:
    # Object storage: "/<bucket>/<prefix>" where uploads are written
    PRIVATE_OBJECT_DIR = os.environ.get("PRIVATE_OBJECT_DIR", "")
    OBJECT_STORAGE_SIDECAR_URL = os.environ.get("OBJECT_STORAGE_SIDECAR_URL", "http://127.0.0.1:1106")
    UPLOAD_URL_TTL_SEC = 900
    DOWNLOAD_CACHE_TTL_SEC = 3600

    # External image prediction service (optional)
    PREDICTION_API_URL = os.environ.get("PREDICTION_API_URL") or None
    PREDICTION_TIMEOUT = float(os.environ.get("PREDICTION_TIMEOUT", 10))
    PREDICTION_RETRIES = int(os.environ.get("PREDICTION_RETRIES", 2))

    MAX_IMAGE_SIZE = 16 * 1024 * 1024  # 16MB

    CORS_ORIGINS = _split(os.environ.get("CORS_ORIGINS", "*"))
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
    PORT = int(os.environ.get("PORT", 8000))
