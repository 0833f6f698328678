"""Failure classification shared by every check and probe.

A failed check carries an :class:`ErrorType` so a summary can tell a
deployment that is unreachable apart from one that renders the wrong
page or answers the claim API incorrectly.
"""

from enum import Enum


class ErrorType(Enum):
    """Classification of check failures.

    Error Categories:
    - CONNECTIVITY: Target unreachable, navigation or request timed out
    - STRUCTURAL: Expected page element missing, hidden or disabled
    - BEHAVIORAL: Element present but its interaction misbehaved
    - API_CONTRACT: Claim API answered with the wrong status or body
    - SCENARIO: Declared probe plan is inconsistent or a prerequisite failed
    """
    CONNECTIVITY = "connectivity"
    STRUCTURAL = "structural"
    BEHAVIORAL = "behavioral"
    API_CONTRACT = "api_contract"
    SCENARIO = "scenario"


class ConformanceError(Exception):
    """Base class for errors that abort part of a conformance run."""


class ConnectivityError(ConformanceError):
    """The target could not be reached after the configured retries."""

    def __init__(self, url: str, attempts: int, cause: BaseException = None):
        self.url = url
        self.attempts = attempts
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(
            f"Could not reach {url} after {attempts} attempt(s){detail}"
        )


class ScenarioSequenceError(ConformanceError, ValueError):
    """A scenario set's expectations contradict its own history."""
