"""
Configuration loaded from environment variables
"""
import os
from dotenv import load_dotenv

load_dotenv()


def _flag(name, default='false'):
    return os.getenv(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    """Application configuration"""

    # Supabase
    SUPABASE_URL = os.getenv('SUPABASE_URL', '')
    SUPABASE_KEY = os.getenv('SUPABASE_KEY', '')
    SUPABASE_JWT_SECRET = os.getenv('SUPABASE_JWT_SECRET', '')

    # Platform the OAuth redirect lands on: web, ios or android
    PLATFORM = os.getenv('PLATFORM', 'web').lower()

    # Redirect targets
    SITE_URL = os.getenv('SITE_URL', 'http://localhost:8081')
    APP_SCHEME = os.getenv('APP_SCHEME', 'flycast')
    CALLBACK_PATH = '/auth/callback'
    PROFILE_PATH = os.getenv('PROFILE_PATH', '/profile')

    # Seconds to wait for the OAuth session to settle
    AUTH_TIMEOUT_SECONDS = min(10.0, max(5.0, float(os.getenv('AUTH_TIMEOUT_SECONDS', '8'))))

    # Enables the sample data seed
    DEV_MODE = _flag('DEV_MODE')

    # Logging
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    LOG_FORMAT = os.getenv('LOG_FORMAT', 'console')

    @classmethod
    def validate(cls):
        """Raise if the Supabase connection settings are missing"""
        missing = [
            name for name in ('SUPABASE_URL', 'SUPABASE_KEY')
            if not getattr(cls, name)
        ]
        if missing:
            raise RuntimeError(
                f"Missing Supabase environment variables: {', '.join(missing)}. "
                "Please check your .env file."
            )
