"""
Session resolution after an OAuth redirect

After the identity provider redirects back into the app three signals race
for the outcome: an immediate get_session() probe, the provider's auth state
change stream and a timeout. The first one to settle wins; the subscription,
timer and probe are torn down and every later signal is ignored.
"""
import asyncio
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional
from urllib.parse import parse_qs, urlsplit

import structlog
from auth import PROVIDER_ERRORS, error_reason
from config import Config
from errors import AuthError, AuthTimeoutError

logger = structlog.get_logger()

IDLE = 'idle'
PROBING = 'probing'
RESOLVED = 'resolved'
FAILED = 'failed'
TIMED_OUT = 'timed_out'

TERMINAL_STATES = (RESOLVED, FAILED, TIMED_OUT)

SIGNED_IN = 'SIGNED_IN'
SIGNED_OUT = 'SIGNED_OUT'


@dataclass
class AuthResult:
    """Terminal outcome of a session resolution"""
    success: bool
    state: str
    message: str
    user: Optional[Any] = None
    session: Optional[Any] = None
    error: Optional[AuthError] = None


def is_valid_session(session) -> bool:
    """A session with a token, a user and (if known) an unexpired expiry"""
    if session is None:
        return False
    if not getattr(session, 'access_token', None) or getattr(session, 'user', None) is None:
        return False
    expires_at = getattr(session, 'expires_at', None)
    if expires_at is not None and expires_at <= time.time():
        return False
    return True


def redirect_params(url):
    """Query and fragment parameters of a redirect URL, first value each"""
    parts = urlsplit(url)
    query = {key: values[0] for key, values in parse_qs(parts.query).items()}
    fragment = {key: values[0] for key, values in parse_qs(parts.fragment).items()}
    return query, fragment


class RedirectStrategy:
    """Platform-specific handling of the OAuth redirect"""

    name = None

    def redirect_to(self) -> str:
        raise NotImplementedError

    def oauth_options(self) -> dict:
        return {'redirect_to': self.redirect_to()}

    def extract_tokens(self, query, fragment):
        raise NotImplementedError

    async def prepare(self, auth, redirect_url):
        """Surface provider errors and hand any redirect tokens to the client"""
        if not redirect_url:
            return
        query, fragment = redirect_params(redirect_url)

        error = fragment.get('error') or query.get('error')
        if error:
            description = fragment.get('error_description') or query.get('error_description')
            logger.warning('auth_callback_error', error=error, description=description)
            raise AuthError(description or error)

        tokens = self.extract_tokens(query, fragment)
        if tokens is None:
            return
        try:
            await auth.set_session(*tokens)
        except PROVIDER_ERRORS as e:
            logger.warning('auth_set_session_failed', strategy=self.name, error=error_reason(e))
            raise AuthError(error_reason(e), e) from e


class WebRedirectStrategy(RedirectStrategy):
    """Browser landing on the site callback route

    The provider puts the tokens in the URL fragment; forwarded links may
    carry them in the query instead. The client does not read either on its
    own, so the session is forced from them before the probe runs; otherwise
    get_session() reports no session.
    """

    name = 'web'

    def redirect_to(self):
        return Config.SITE_URL.rstrip('/') + Config.CALLBACK_PATH

    def extract_tokens(self, query, fragment):
        for params in (fragment, query):
            if params.get('access_token') and params.get('refresh_token'):
                return params['access_token'], params['refresh_token']
        return None


class NativeRedirectStrategy(RedirectStrategy):
    """In-app browser session returning through the app's URL scheme"""

    name = 'native'

    def redirect_to(self):
        return f"{Config.APP_SCHEME}://auth/callback"

    def oauth_options(self):
        # The app opens the URL itself in an auth browser session
        return {'redirect_to': self.redirect_to(), 'skip_browser_redirect': True}

    def extract_tokens(self, query, fragment):
        for params in (query, fragment):
            if params.get('access_token') and params.get('refresh_token'):
                return params['access_token'], params['refresh_token']
        return None


STRATEGIES = {
    'web': WebRedirectStrategy,
    'ios': NativeRedirectStrategy,
    'android': NativeRedirectStrategy,
}


def select_strategy(platform=None) -> RedirectStrategy:
    """Redirect strategy for the platform, chosen once at startup"""
    platform = (platform or Config.PLATFORM).lower()
    try:
        return STRATEGIES[platform]()
    except KeyError:
        raise ValueError(f"Unknown platform {platform!r}; expected one of {sorted(STRATEGIES)}")


class AuthSessionCoordinator:
    """Resolves the session once after an OAuth redirect

    States: idle -> probing -> resolved | failed | timed_out. A coordinator
    is single use.
    """

    def __init__(self, auth, strategy: RedirectStrategy, timeout: float = None,
                 on_settled: Callable[[AuthResult], None] = None):
        self.auth = auth
        self.strategy = strategy
        self.timeout = Config.AUTH_TIMEOUT_SECONDS if timeout is None else timeout
        self.on_settled = on_settled
        self.state = IDLE
        self.result = None
        self._done = None

    @property
    def settled(self):
        return self.state in TERMINAL_STATES

    async def resolve(self, redirect_url: str = None) -> AuthResult:
        if self.state != IDLE:
            raise RuntimeError(f"Coordinator already used (state={self.state})")
        self.state = PROBING

        loop = asyncio.get_running_loop()
        self._done = loop.create_future()

        try:
            await self.strategy.prepare(self.auth, redirect_url)
        except AuthError as e:
            self._settle(FAILED, error=e)
        else:
            await self._race(loop)

        result = self._done.result()
        logger.info('auth_settled', state=result.state, message=result.message)
        if self.on_settled is not None:
            self.on_settled(result)
        return result

    async def _race(self, loop):
        subscription = self.auth.on_auth_state_change(self._on_auth_event)
        timer = loop.call_later(self.timeout, self._on_timeout)
        probe = asyncio.ensure_future(self._probe())
        probe.add_done_callback(self._on_probe_done)
        try:
            await self._done
        finally:
            subscription.unsubscribe()
            timer.cancel()
            if not probe.done():
                probe.cancel()

    def _settle(self, state, session=None, error=None):
        if self.settled:
            return False

        if state == RESOLVED:
            result = AuthResult(True, state, 'Signed in', user=session.user, session=session)
        else:
            result = AuthResult(False, state, error.message, error=error)

        self.state = state
        self.result = result
        if not self._done.done():
            self._done.set_result(result)
        return True

    async def _probe(self):
        try:
            session = await self.auth.get_session()
        except PROVIDER_ERRORS as e:
            self._settle(FAILED, error=AuthError(error_reason(e), e))
            return

        if is_valid_session(session):
            self._settle(RESOLVED, session=session)
        else:
            logger.debug('auth_probe_no_session')

    def _on_probe_done(self, task):
        if task.cancelled() or task.exception() is None:
            return
        error = task.exception()
        logger.error('auth_probe_crashed', error=repr(error))
        self._settle(FAILED, error=AuthError(str(error) or 'Session check failed', error))

    def _on_auth_event(self, event, session):
        if self.settled:
            return
        logger.debug('auth_state_changed', auth_event=str(event))
        if event == SIGNED_IN and is_valid_session(session):
            self._settle(RESOLVED, session=session)
        elif event == SIGNED_OUT:
            self._settle(FAILED, error=AuthError('Signed out before sign in completed'))

    def _on_timeout(self):
        self._settle(TIMED_OUT, error=AuthTimeoutError(self.timeout))
