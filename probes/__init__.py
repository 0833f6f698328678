"""
Wire-level probes of the faucet claim API.

Submodules:
    client: ``ClaimApiClient`` (aiohttp) with bounded connection retries.
    model: ``WalletStateModel`` virtual-clock cooldown / wallet-cap replica.
    rate_limit: ``RateLimitScenarioEngine`` running ordered scenario sets.
    chain: ``ChainVerifier`` receipt lookups over JSON-RPC.
    cors: ``CorsVerifier`` preflight and response-header checks.
"""
