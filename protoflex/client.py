"""HTTP client for the token endpoints of a remote server."""

import urllib.error
import urllib.request
from http import HTTPStatus


class TokenError(Exception):
    """Raised when a token request fails or the server rejects it."""


class ServerClient:
    """Talks to a remote server's /generate and /validate endpoints."""

    def __init__(self, timeout=None):
        self.timeout = timeout

    def generate_token(self, server_ip, server_port):
        """Ask the server to generate a token."""
        url = f"http://{server_ip}:{server_port}/generate"
        self._get(url, "generate token", "failed to generate token")

    def validate_token(self, server_ip, server_port, token):
        """Ask the server to validate ``token``."""
        url = f"http://{server_ip}:{server_port}/validate?token={token}"
        self._get(url, "validate token", "token validation failed")

    def _get(self, url, action, failure):
        try:
            with urllib.request.urlopen(url, timeout=self.timeout) as response:
                status, reason = response.status, response.reason
        except urllib.error.HTTPError as exc:
            status, reason = exc.code, exc.reason
            exc.close()
        except (urllib.error.URLError, OSError, ValueError) as exc:
            raise TokenError(f"failed to send request to {action}: {exc}") from exc

        if status != HTTPStatus.OK:
            raise TokenError(f"{failure}, server returned: {_status_line(status, reason)}")


def _status_line(status, reason):
    if not reason:
        try:
            reason = HTTPStatus(status).phrase
        except ValueError:
            reason = ""
    return f"{status} {reason}".strip()