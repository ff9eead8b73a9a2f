"""
Configuration settings for the scheduling engine.
Load configuration from environment variables or a .env file.
"""
import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file
env_file = Path(__file__).parent.parent.parent / '.env'
if env_file.exists():
    load_dotenv(env_file)


def _env_bool(name: str, default: str = 'false') -> bool:
    return os.getenv(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


class Settings:
    """Application settings loaded from environment variables."""

    # Project paths
    PROJECT_ROOT = Path(__file__).parent.parent.parent
    DATA_DIR = Path(os.getenv('CPM_DATA_DIR', str(PROJECT_ROOT / 'data')))
    OUTPUT_DIR = Path(os.getenv('CPM_OUTPUT_DIR', str(DATA_DIR / 'output')))

    # Logging
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    LOG_DIR = os.getenv('CPM_LOG_DIR', '')

    # ============================================================================
    # CPM Engine
    # ============================================================================
    # Lenient by default: links to unknown tasks are dropped with a warning
    STRICT_LINKS = _env_bool('CPM_STRICT_LINKS')
    FLOAT_EPSILON = int(os.getenv('CPM_FLOAT_EPSILON', '0'))
    MAX_CRITICAL_PATHS = int(os.getenv('CPM_MAX_CRITICAL_PATHS', '1000'))
    NEAR_CRITICAL_THRESHOLD = int(os.getenv('CPM_NEAR_CRITICAL_THRESHOLD', '5'))

    @classmethod
    def validate_required_settings(cls) -> list[str]:
        """
        Validate that engine settings are usable.
        Returns list of problems found.
        """
        problems = []

        if cls.FLOAT_EPSILON < 0:
            problems.append('CPM_FLOAT_EPSILON must be >= 0')
        if cls.MAX_CRITICAL_PATHS < 1:
            problems.append('CPM_MAX_CRITICAL_PATHS must be >= 1')
        if cls.NEAR_CRITICAL_THRESHOLD < 0:
            problems.append('CPM_NEAR_CRITICAL_THRESHOLD must be >= 0')

        return problems


# Create settings instance
settings = Settings()
