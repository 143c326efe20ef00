"""Runtime configuration read from the environment."""

import os

BACKEND = os.getenv("FLOWTASK_BACKEND", "mock")
MOCK_DELAY = float(os.getenv("FLOWTASK_MOCK_DELAY", "0.3"))

RECORD_STORE_URL = os.getenv("RECORD_STORE_URL", "")
RECORD_STORE_PROJECT_ID = os.getenv("RECORD_STORE_PROJECT_ID", "")
RECORD_STORE_PUBLIC_KEY = os.getenv("RECORD_STORE_PUBLIC_KEY", "")
RECORD_STORE_TIMEOUT = float(os.getenv("RECORD_STORE_TIMEOUT", "30.0"))

CORS_ORIGINS = os.getenv(
    "CORS_ORIGINS",
    "http://localhost:3001,http://localhost:5173,http://localhost:8000",
).split(",")
