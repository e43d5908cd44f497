"""
Authentication: token verification and identity provider operations
"""
import httpx
import jwt
import structlog
from functools import wraps
from flask import current_app, request, jsonify
from supabase import AuthError as ProviderError

from config import Config
from errors import AuthError

logger = structlog.get_logger()

OAUTH_PROVIDERS = ('google', 'apple')

# Raised by the auth client: provider rejections and transport failures
PROVIDER_ERRORS = (ProviderError, httpx.HTTPError)


def verify_token(token):
    """Verify Supabase JWT token"""
    try:
        # Supabase tokens have varying audience formats
        payload = jwt.decode(
            token,
            Config.SUPABASE_JWT_SECRET,
            algorithms=['HS256'],
            options={"verify_aud": False}
        )
        return payload
    except jwt.ExpiredSignatureError:
        logger.info('token_expired')
        return None
    except jwt.InvalidTokenError as e:
        logger.info('token_invalid', error=str(e))
        return None


def require_auth(f):
    """Decorator to require authentication"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get('Authorization')

        if not auth_header:
            return jsonify({'error': 'No authorization header'}), 401

        # Extract token from "Bearer <token>"
        try:
            token = auth_header.split(' ')[1]
        except IndexError:
            return jsonify({'error': 'Invalid authorization header format'}), 401

        payload = verify_token(token)
        if not payload:
            return jsonify({'error': 'Invalid or expired token'}), 401

        # Add user info to request
        request.user_id = payload.get('sub')
        request.user_email = payload.get('email')
        request.access_token = token

        return current_app.ensure_sync(f)(*args, **kwargs)

    return decorated_function


def error_reason(error):
    return getattr(error, 'message', None) or str(error) or 'Authentication failed'


class AuthService:
    """Identity provider operations on an injected Supabase client"""

    def __init__(self, supabase_client, strategy):
        self.supabase = supabase_client
        self.strategy = strategy

    async def sign_up(self, email: str, password: str, username: str = None):
        """Register with email and password; returns the new auth user"""
        try:
            response = await self.supabase.auth.sign_up({
                'email': email,
                'password': password,
                'options': {
                    'data': {'username': username or email.split('@')[0]}
                }
            })
        except PROVIDER_ERRORS as e:
            logger.warning('sign_up_failed', email=email, error=error_reason(e))
            raise AuthError(error_reason(e), e) from e
        return response.user

    async def sign_in(self, email: str, password: str):
        """Sign in with email and password; returns the auth user"""
        try:
            response = await self.supabase.auth.sign_in_with_password({
                'email': email,
                'password': password,
            })
        except PROVIDER_ERRORS as e:
            logger.warning('sign_in_failed', email=email, error=error_reason(e))
            raise AuthError(error_reason(e), e) from e
        return response.user

    async def sign_in_with_oauth(self, provider: str) -> str:
        """Start an OAuth flow and return the URL to open in a browser"""
        if provider not in OAUTH_PROVIDERS:
            raise AuthError(f"Unsupported sign-in provider: {provider}")
        try:
            response = await self.supabase.auth.sign_in_with_oauth({
                'provider': provider,
                'options': self.strategy.oauth_options(),
            })
        except PROVIDER_ERRORS as e:
            logger.warning('oauth_start_failed', provider=provider, error=error_reason(e))
            raise AuthError(error_reason(e), e) from e

        if not response.url:
            raise AuthError(f"No authorization URL returned for {provider}")
        return response.url

    async def get_session(self):
        try:
            return await self.supabase.auth.get_session()
        except PROVIDER_ERRORS as e:
            raise AuthError(error_reason(e), e) from e

    async def sign_out(self):
        try:
            await self.supabase.auth.sign_out()
        except PROVIDER_ERRORS as e:
            logger.warning('sign_out_failed', error=error_reason(e))
            raise AuthError(error_reason(e), e) from e
