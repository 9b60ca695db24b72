"""Error taxonomy raised by the ballot store and service."""

from __future__ import annotations

from typing import Any, Dict


class BallotError(Exception):
    """Base class for recoverable ballot failures.

    ``code`` is the stable machine identifier returned to RPC callers;
    ``details`` carries extra reply fields (valid choices, status, ...).
    """

    code = "ballot_error"

    def __init__(self, message: str = "", **details: Any):
        super().__init__(message or self.code)
        self.details: Dict[str, Any] = details

    def to_reply(self) -> Dict[str, Any]:
        reply: Dict[str, Any] = {"error": str(self), "code": self.code}
        reply.update(self.details)
        return reply


class InvalidProposal(BallotError):
    code = "invalid_proposal"


class InvalidRequest(BallotError):
    code = "invalid_request"


class NotAuthorized(BallotError):
    code = "not_authorized"


class CommunityNotFound(BallotError):
    code = "community_not_found"


class ProposalNotFound(BallotError):
    code = "proposal_not_found"


class VoterNotFound(BallotError):
    code = "voter_not_found"


class VotingClosed(BallotError):
    code = "voting_closed"


class NotEligible(BallotError):
    code = "not_eligible"


class InvalidOption(BallotError):
    code = "invalid_option"


class AlreadyClosed(BallotError):
    code = "already_closed"


class AlreadyProcessed(BallotError):
    code = "already_processed"


class StorageUnavailable(BallotError):
    code = "storage_unavailable"
