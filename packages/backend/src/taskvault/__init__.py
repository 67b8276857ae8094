"""TaskVault — per-user task tracking behind stateless JWT auth.

Users register and log in to receive an access/refresh token pair, then
manage their own task list. Every task query is scoped to its owner.
"""

__version__ = "0.1.0"
