# token_relay/main.py
"""
Flask app relaying an OAuth access token from the browser to the application
that started the authorization.

The application generates a state, sends the user to Twitch, and Twitch
redirects to a small helper page. That page POSTs the token here together with
the state; the application then polls with the same state to pick it up once.

Endpoints:
  - POST /store_access_token   form fields: state, accessToken   (text reply)
  - GET  /get_access_token?state=...                           (JSON reply)
  - GET  /.well-known/health

Every failure answers with one fixed body per endpoint, so callers cannot tell
a malformed state from an unknown one or from a database outage. The cause is
only written to the log.

Environment variables (optional):
  - RELAY_CONFIG (default 'relay_config.json'): JSON file with database settings
  - DATABASE_URL: SQLAlchemy URL replacing the one built from the file
  - RELAY_HOST, RELAY_PORT, RELAY_DEBUG: development server settings

Dependencies:
  pip install Flask SQLAlchemy PyMySQL
"""

import os

from flask import Flask, current_app, jsonify, request
from werkzeug.exceptions import HTTPException

from .config import ConfigError, config_from_env
from .state import is_valid_state
from .store import StoreError, TokenStore

ERROR_MESSAGE = "An error occur, please retry..."
SUCCESS_MESSAGE = "You successfully connected to Twitch.tv.\nYou can now close this page."
ERROR_TOKEN = "error"

TEXT_HEADERS = {'Content-Type': 'text/plain; charset=utf-8'}


def _resolve_store(app, config):
    try:
        return TokenStore.from_config(config or config_from_env())
    except (ConfigError, StoreError) as e:
        app.logger.warning('Token store unavailable, every request will fail: %s', e)
        return None


def _get_store():
    return current_app.extensions.get('token_store')


def _error_text():
    return ERROR_MESSAGE, 200, TEXT_HEADERS


def _error_token():
    return jsonify({'token': ERROR_TOKEN})


def _purge_expired(store):
    try:
        removed = store.purge_expired()
    except StoreError:
        current_app.logger.warning('Could not purge expired tokens', exc_info=True)
        return
    if removed:
        current_app.logger.info('Purged %d expired token(s)', removed)


def create_app(store=None, config=None):
    """Build the relay app around `store`, or a store built from configuration."""
    app = Flask(__name__)
    app.extensions['token_store'] = store if store is not None else _resolve_store(app, config)

    @app.route('/store_access_token', methods=['GET', 'POST'])
    def store_access_token():
        """Depositor: validate the state and store the token against it."""
        if request.method != 'POST':
            app.logger.warning('Deposit rejected: %s request', request.method)
            return _error_text()

        state = request.form.get('state')
        access_token = request.form.get('accessToken')
        if state is None or access_token is None:
            app.logger.warning('Deposit rejected: missing state or accessToken field')
            return _error_text()
        if not is_valid_state(state):
            app.logger.warning('Deposit rejected: malformed state')
            return _error_text()

        store = _get_store()
        if store is None:
            app.logger.error('Deposit failed: token store is not configured')
            return _error_text()

        _purge_expired(store)
        try:
            store.insert(state, access_token)
        except StoreError:
            app.logger.exception('Deposit failed: could not store token')
            return _error_text()

        app.logger.info('Token deposited')
        return SUCCESS_MESSAGE, 200, TEXT_HEADERS

    @app.route('/get_access_token', methods=['GET'])
    def get_access_token():
        """Collector: hand out the token for a state once, then forget it."""
        state = request.args.get('state')
        if state is None or not is_valid_state(state):
            app.logger.warning('Collect rejected: missing or malformed state')
            return _error_token()

        store = _get_store()
        if store is None:
            app.logger.error('Collect failed: token store is not configured')
            return _error_token()

        try:
            record = store.pop(state)
        except StoreError:
            app.logger.exception('Collect failed: could not read token')
            return _error_token()

        if record is None:
            app.logger.info('Collect: no token for state yet')
            return _error_token()
        return jsonify({'token': record.token})

    @app.route('/.well-known/health', methods=['GET'])
    def health():
        return jsonify({'status': 'ok'})

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        if isinstance(e, HTTPException):
            return e
        app.logger.exception('Unhandled error on %s', request.path)
        if request.endpoint == 'get_access_token':
            return _error_token()
        return _error_text()

    return app


def main():
    app = create_app()
    host = os.getenv('RELAY_HOST', '0.0.0.0')
    port = int(os.getenv('RELAY_PORT', '5003'))
    debug = os.getenv('RELAY_DEBUG', 'false').lower() in ('1', 'true', 'yes')
    # helpful startup info printed to console
    print('Starting token relay (Flask)')
    print('RELAY_CONFIG=', os.getenv('RELAY_CONFIG', 'relay_config.json'))
    store = app.extensions['token_store']
    if store is not None:
        print('TABLE=', store.table_name)
    app.run(host=host, port=port, debug=debug)


if __name__ == '__main__':
    main()
