"""
Ingestion layer — authenticated Discogs reads.

Submodules:
  session     — DiscogsSession: config + signer + token store + httpx client
  collection  — CollectionFetcher: paginated collection listing (partial on error)
  releases    — ReleaseDetailFetcher: rate-spaced /releases/{id} lookups

Credential placement (.env, gitignored):
  DISCOGS_CONSUMER_KEY     — Discogs application consumer key
  DISCOGS_CONSUMER_SECRET  — Discogs application consumer secret
  DISCOGS_PROXY_URL        — optional token-leg relay
"""
