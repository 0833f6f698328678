"""
Core module for the faucet conformance suite.

This package holds the declarative descriptor tables, configuration,
logging, response parsing and result aggregation shared by the browser
checks and the wire-level probes, plus the run orchestrator.

Submodules:
    config: Run settings (``ConformanceSettings``) via Pydantic.
    descriptors: Immutable page, action, claim and scenario descriptors.
    registry: Default descriptor tables (``build_default_registry``).
    address: Wallet-identity canonicalisation across address encodings.
    extractor: ``DataExtractor`` for claim bodies and page error texts.
    errors: ``ErrorType`` failure taxonomy and run-aborting exceptions.
    results: ``ResultAggregator`` sink with Rich summary and JSON export.
    orchestrator: ``ConformanceRunner`` sequencing every suite.
    logging_setup: Compressed rotating file + safe console logging.
    utils: Corruption-safe JSON read/write helpers.
"""
