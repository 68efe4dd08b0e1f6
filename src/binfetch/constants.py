"""
Constants and configuration values for binfetch.

This module contains hardcoded values, URLs, timeouts, and other constants
used throughout the application.
"""

# Provider API endpoints
GITHUB_API_BASE = "https://api.github.com"
GITHUB_API_VERSION = "2022-11-28"
GITLAB_API_PATH = "/api/v4"

# Stable provider identifiers
GITHUB_PROVIDER_ID = "github"
GITLAB_PROVIDER_ID = "gitlab"

# Hosts known without extra configuration
DEFAULT_PROVIDER_HOSTS = {
    "github.com": GITHUB_PROVIDER_ID,
    "www.github.com": GITHUB_PROVIDER_ID,
    "gitlab.com": GITLAB_PROVIDER_ID,
    "www.gitlab.com": GITLAB_PROVIDER_ID,
}

# Token environment variables, checked in order
GITHUB_TOKEN_ENV_VARS = ("GITHUB_AUTH_TOKEN", "GITHUB_TOKEN")
GITLAB_TOKEN_ENV_VARS = ("GITLAB_TOKEN",)

# Network timeouts (in seconds)
DEFAULT_REQUEST_TIMEOUT = 30

# Asset download settings
DEFAULT_CONNECT_RETRIES = 5
DEFAULT_BACKOFF_FACTOR = 0.3
DEFAULT_CHUNK_SIZE = 8192
RETRY_STATUS_FORCELIST = (408, 429, 500, 502, 503, 504)
SPOOL_MAX_MEMORY = 16 * 1024 * 1024  # 16 MB kept in memory before spilling to disk
RATE_LIMIT_WARNING_THRESHOLD = 10

# Digest used for the artifact hash accumulator
ARTIFACT_HASH_ALGORITHM = "sha256"
EXECUTABLE_PERMISSIONS = 0o755

# Configuration
APP_NAME = "binfetch"
CONFIG_FILE_NAME = "binfetch.yaml"
CONFIG_ENV_VAR = "BINFETCH_CONFIG"

# Logging configuration
LOGGER_NAME = "binfetch"
LOG_LEVEL_ENV_VAR = "BINFETCH_LOG_LEVEL"
LOG_FILE_NAME = "binfetch.log"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
INFO_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DEBUG_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s: %(message)s"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
LOG_FILE_BACKUP_COUNT = 5
