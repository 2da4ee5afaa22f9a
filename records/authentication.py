"""
Token authentication for the API.

Clients send ``Authorization: Token <key>``; the web client sends
``Bearer <key>``, so both keywords are accepted.
Keeping this class apart from the views avoids circular imports when DRF
loads authentication classes during initialization.
"""
from __future__ import annotations

from rest_framework import authentication, exceptions


class TokenAuthentication(authentication.TokenAuthentication):
    keyword = 'Token'
    keywords = ('token', 'bearer')

    def authenticate(self, request):
        auth = authentication.get_authorization_header(request).split()
        if not auth or auth[0].lower().decode(errors='ignore') not in self.keywords:
            return None
        if len(auth) != 2:
            raise exceptions.AuthenticationFailed('Invalid token header.')
        try:
            token = auth[1].decode()
        except UnicodeError:
            raise exceptions.AuthenticationFailed('Invalid token header. Token string should not contain invalid characters.')
        return self.authenticate_credentials(token)
