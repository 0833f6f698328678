"""
Browser-driven conformance checks.

Submodules:
    base: ``PageCheck`` shared navigation, lookup and liveness helpers.
    ui: ``UIConformanceVerifier`` page structure checks.
    actions: ``ActionExecutor`` per-kind button interactions.
    claim: ``ClaimFlowRunner`` claim-form submissions.
"""
