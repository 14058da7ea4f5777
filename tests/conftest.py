import os

# Minimal env so pydantic-settings doesn't require a real .env file
os.environ.setdefault("OPENWEATHER_API_KEY", "test-key")
os.environ.setdefault("GOOGLE_API_KEY", "test-google-key")
