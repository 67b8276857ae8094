"""Authentication and authorization.

Learn: Users authenticate with email/password and receive two JWTs:
1. Access token → short-lived, sent as `Authorization: Bearer ...`
2. Refresh token → long-lived, exchanged for a new access token

No session state is kept on the server. The access token's claims
(user id + email) are the "current identity" used to scope task queries.
"""
