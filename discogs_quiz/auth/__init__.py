"""
Discogs OAuth 1.0a: PLAINTEXT signing, the three-leg authorization flow and
per-user token storage.

Import from the submodules directly (``auth.signer``, ``auth.flow``,
``auth.token_store``); this package does not re-export them.
"""
