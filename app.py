"""
HTTP endpoints: OAuth callback, OAuth start and the development seed
"""
from urllib.parse import quote

import structlog
from flask import Flask, jsonify, redirect, request

from auth import AuthService, require_auth
from auth_session import AuthSessionCoordinator, select_strategy
from config import Config
from database import Database, create_store_client
from errors import AuthError, StoreError
from logging_config import setup_logging
from seed import populate_database

logger = structlog.get_logger()


def _profile_target(result):
    if result.success:
        return Config.PROFILE_PATH
    return f"{Config.PROFILE_PATH}?error={quote(result.message)}"


def create_app(strategy=None, client_factory=create_store_client):
    """Build the Flask app; the redirect strategy is fixed for its lifetime"""
    app = Flask(__name__)
    strategy = strategy or select_strategy(Config.PLATFORM)
    app.config['AUTH_STRATEGY'] = strategy

    @app.route(Config.CALLBACK_PATH, methods=['GET', 'POST'])
    async def auth_callback():
        if request.method == 'POST':
            payload = request.get_json(silent=True) or {}
            redirect_url = payload.get('url')
            if not redirect_url:
                return jsonify({'error': 'Missing redirect url'}), 400
        else:
            redirect_url = request.url

        client = await client_factory()
        coordinator = AuthSessionCoordinator(client.auth, strategy)
        result = await coordinator.resolve(redirect_url)

        if result.success:
            try:
                await Database(client).users.ensure_profile(result.user)
            except StoreError as e:
                logger.warning('profile_sync_failed', user_id=result.user.id, error=str(e))

        target = _profile_target(result)
        if request.method == 'POST':
            status = 200 if result.success else 401
            return jsonify({
                'success': result.success,
                'state': result.state,
                'message': result.message,
                'redirect': target,
            }), status
        return redirect(target)

    @app.route('/auth/oauth/<provider>', methods=['POST'])
    async def oauth_start(provider):
        client = await client_factory()
        try:
            url = await AuthService(client, strategy).sign_in_with_oauth(provider)
        except AuthError as e:
            return jsonify({'error': e.message}), 400
        return jsonify({'provider': provider, 'url': url})

    @app.route('/dev/seed', methods=['POST'])
    @require_auth
    async def dev_seed():
        if not Config.DEV_MODE:
            return jsonify({'error': 'Not found'}), 404

        client = await client_factory()
        client.postgrest.auth(request.access_token)
        summary = await populate_database(Database(client), request.user_id)
        return jsonify({
            'created': summary.created,
            'failed': summary.failed,
            'skipped': summary.skipped,
        })

    return app


if __name__ == '__main__':
    setup_logging()
    create_app().run(debug=Config.DEV_MODE)
