"""
Configuration - env vars, constants, API key setup.
"""

import os
import logging
from pathlib import Path
from dotenv import load_dotenv
import google.generativeai as genai

ROOT_DIR = Path(__file__).parent.parent
load_dotenv(ROOT_DIR / '.env')

# Logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("stackhub")

# LLM API Key
GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY")

if not GEMINI_API_KEY:
    logger.warning("⚠️ No GEMINI_API_KEY found - AI extraction will fall back to the legacy parser")
else:
    genai.configure(api_key=GEMINI_API_KEY)

# Provider name -> env var holding its credential
PROVIDER_API_KEY_ENV = {
    "gemini": "GEMINI_API_KEY",
}


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() not in ("0", "false", "no", "off")


# Import pipeline settings
AI_TIMEOUT_SECONDS = int(os.environ.get("AI_TIMEOUT_SECONDS", "120"))
MAX_UPLOAD_MB = int(os.environ.get("MAX_UPLOAD_MB", "30"))
AI_FALLBACK_TO_LEGACY = _env_flag("AI_FALLBACK_TO_LEGACY", True)


def get_llm_api_key():
    """Get the LLM API key from environment variables."""
    return os.environ.get("GEMINI_API_KEY") or GEMINI_API_KEY


def get_provider_api_key(provider: str):
    """Credential for an AI provider, read at call time so tests and reloads see env changes."""
    env_name = PROVIDER_API_KEY_ENV.get(provider)
    if not env_name:
        return None
    return os.environ.get(env_name) or None


def get_version_info():
    """Get deployment version information."""
    git_commit = os.environ.get("GIT_COMMIT_SHA")
    if not git_commit:
        try:
            if os.path.exists(".git_commit"):
                with open(".git_commit", "r") as f:
                    git_commit = f.read().strip()
        except OSError:
            pass

    if not git_commit:
        logger.warning("GIT_COMMIT_SHA not set and .git_commit not found. Build pipeline issue?")
        git_commit = "unknown"

    build_time = os.environ.get("BUILD_TIME", "unknown")
    env = os.environ.get("ENV", os.environ.get("ENVIRONMENT", "development"))

    return {
        "git_commit": git_commit,
        "build_time": build_time,
        "environment": env
    }
