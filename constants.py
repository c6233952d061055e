import os

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", 3001))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", None)

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

EXECUTION_URL = os.getenv("EXECUTION_URL", "https://api.jdoodle.com/v1/execute")
# Unset means no local timeout; the provider enforces its own.
EXECUTION_TIMEOUT = float(os.getenv("EXECUTION_TIMEOUT")) if os.getenv("EXECUTION_TIMEOUT") else None
# "clientId:clientSecret,clientId:clientSecret"
EXECUTION_CREDENTIALS = os.getenv("EXECUTION_CREDENTIALS", "")

DEFAULT_LANGUAGE = "python"
PLACEHOLDER_CODE = "// Start coding..."

# editor language -> (provider language identifier, provider version selector)
LANGUAGE_RUNTIMES = {
    "python": ("python3", "4"),
    "java": ("java", "4"),
    "c": ("c", "5"),
    "cpp": ("cpp", "5"),
    "nodejs": ("nodejs", "4"),
}

SUPPORTED_LANGUAGES = frozenset(LANGUAGE_RUNTIMES)
