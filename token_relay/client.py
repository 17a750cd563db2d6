# token_relay/client.py
"""
Application side of the relay.

The application cannot receive the Twitch redirect itself, so it:
- generates a state (see token_relay.state.generate_state)
- opens the authorize URL built by build_authorize_url() in the user's browser
- polls the relay's /get_access_token endpoint with the same state

Dependencies:
  pip install requests
"""

import time
from urllib.parse import urlencode

import requests


TWITCH_AUTHORIZE_URL = "https://id.twitch.tv/oauth2/authorize"
# body value the relay answers with while no token is stored for a state
ERROR_TOKEN = "error"


class RelayClientError(Exception):
    """Raised when the relay cannot be reached or answers unexpectedly."""


def build_authorize_url(client_id, redirect_uri, scopes, state, authorize_url=TWITCH_AUTHORIZE_URL):
    """
    Build the implicit grant URL. Twitch redirects to `redirect_uri` (the helper
    page) with the token and `state` in the URL fragment.
    """
    if isinstance(scopes, str):
        scopes = scopes.split()
    params = {
        "response_type": "token",
        "client_id": client_id,
        "redirect_uri": redirect_uri,
        "scope": " ".join(scopes),
        "state": state,
    }
    return f"{authorize_url}?{urlencode(params)}"


class RelayClient:
    def __init__(self, base_url, timeout=5, session=None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch_token(self, state):
        """Ask the relay once. Returns the token, or None if it has not arrived."""
        try:
            resp = self.session.get(
                f"{self.base_url}/get_access_token",
                params={"state": state},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise RelayClientError(f"relay request failed: {e}") from e

        if resp.status_code != 200:
            raise RelayClientError(f"relay returned HTTP {resp.status_code}")
        try:
            token = resp.json().get("token")
        except (ValueError, AttributeError) as e:
            raise RelayClientError("relay returned an unexpected body") from e

        if token is None or token == ERROR_TOKEN:
            return None
        return token

    def wait_for_token(self, state, timeout=120, interval=2, sleep=time.sleep):
        """Poll the relay until the token shows up or `timeout` seconds pass."""
        deadline = time.monotonic() + timeout
        while True:
            token = self.fetch_token(state)
            if token is not None:
                return token
            if time.monotonic() + interval > deadline:
                return None
            sleep(interval)
