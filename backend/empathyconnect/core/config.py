"""
Application configuration loaded from environment variables.
"""

import os

# Environment
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")

# CORS
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "CORS_ORIGINS", "https://localhost,http://localhost:3000,http://localhost:5173"
    ).split(",")
    if origin.strip()
]

# Upstream chat completion gateway
GATEWAY_URL = os.getenv(
    "GATEWAY_URL", "https://ai.gateway.lovable.dev/v1/chat/completions"
)
GATEWAY_API_KEY = os.getenv("GATEWAY_API_KEY", "")
GATEWAY_MODEL = os.getenv("GATEWAY_MODEL", "google/gemini-2.5-flash-lite")
GATEWAY_TEMPERATURE = float(os.getenv("GATEWAY_TEMPERATURE", "0.7"))

# Provider-side retry on HTTP 429 (exponential, capped)
GATEWAY_MAX_RETRIES = int(os.getenv("GATEWAY_MAX_RETRIES", "3"))
GATEWAY_RETRY_BASE_DELAY = float(os.getenv("GATEWAY_RETRY_BASE_DELAY", "2.0"))
GATEWAY_RETRY_MAX_DELAY = float(os.getenv("GATEWAY_RETRY_MAX_DELAY", "15.0"))

# Seconds a token stream may stay silent before the read is abandoned
STREAM_IDLE_TIMEOUT = float(os.getenv("STREAM_IDLE_TIMEOUT", "60.0"))

# Number of trailing messages sent as conversation context
HISTORY_WINDOW = int(os.getenv("HISTORY_WINDOW", "10"))

# Python chat client (request-level retry, linear backoff)
CHAT_API_URL = os.getenv("CHAT_API_URL", "http://localhost:8000/api/chat")
CHAT_API_KEY = os.getenv("CHAT_API_KEY", "")
CLIENT_MAX_RETRIES = int(os.getenv("CLIENT_MAX_RETRIES", "3"))
CLIENT_RETRY_DELAY = float(os.getenv("CLIENT_RETRY_DELAY", "5.0"))
