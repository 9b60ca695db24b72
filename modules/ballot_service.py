"""Voting engine used by cl-hive-ballot RPC methods.

Owns the proposal lifecycle (open -> closed), weighted vote casting with
replacement, member administration, and the lazy auto-close sweep. Failures
are raised as ``modules.errors.BallotError`` subclasses; the plugin layer
turns them into RPC error replies.
"""

from __future__ import annotations

import json
import threading
import time
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from modules import tally
from modules.ballot_store import BallotStore
from modules.errors import (
    AlreadyClosed,
    AlreadyProcessed,
    CommunityNotFound,
    InvalidOption,
    InvalidProposal,
    InvalidRequest,
    NotAuthorized,
    NotEligible,
    ProposalNotFound,
    VoterNotFound,
    VotingClosed,
)


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def _clean_id(value: Any, field: str) -> str:
    """Normalize a community, member or proposal identifier.

    A missing or non-scalar identifier is a malformed call rather than a
    lookup miss, so it raises ``InvalidRequest`` before any store access.
    """
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise InvalidRequest(f"{field} is required")
    cleaned = str(value).strip()
    if not cleaned:
        raise InvalidRequest(f"{field} is required")
    return cleaned


def _display_name(username: str, first_name: str, previous: str) -> str:
    username = (username or "").strip().lstrip("@")
    if username:
        return f"@{username}"
    first_name = (first_name or "").strip()
    return first_name or previous or "Unknown"


class BallotService:
    """Proposal/voting engine backed by a ``BallotStore``.

    ``notifier`` is the delivery gateway (see ``modules.notifier``); it is
    only ever called after the proposal lock is released, and its failures
    are logged, never raised.
    """

    MAX_TITLE_LEN = 200
    MAX_OPTIONS = 10
    MAX_OPTION_LEN = 64
    MAX_NAME_LEN = 64
    MAX_REASON_LEN = 500
    MAX_ATTACHMENT_LEN = 512
    MAX_LIST_LIMIT = 500
    MAX_WEIGHT = 1_000_000_000
    MAX_QUORUM_WEIGHT = 1_000_000_000_000
    MAX_ENDS_AT = 253_402_300_799  # 9999-12-31T23:59:59Z

    SCHEDULER = "scheduler"

    def __init__(
        self,
        store: BallotStore,
        notifier: Any = None,
        logger: Optional[Callable[[str, str], None]] = None,
        deliver_ballots: bool = True,
        publish_results: bool = True,
        time_fn: Callable[[], float] = time.time,
    ):
        self.store = store
        self.notifier = notifier
        self._logger = logger
        self.deliver_ballots = bool(deliver_ballots)
        self.publish_results = bool(publish_results)
        self._time_fn = time_fn
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()
        self.store.initialize()

    def _log(self, message: str, level: str = "info") -> None:
        if self._logger:
            self._logger(message, level)

    def _now(self) -> int:
        return int(self._time_fn())

    @contextmanager
    def _proposal_lock(self, proposal_id: str) -> Iterator[None]:
        with self._locks_guard:
            lock = self._locks.setdefault(proposal_id, threading.Lock())
        with lock:
            yield

    def _forget_lock(self, proposal_id: str) -> None:
        # Closed proposals are immutable, so a later caller may use a fresh lock.
        with self._locks_guard:
            self._locks.pop(proposal_id, None)

    # Lookups

    def _require_community(self, community_id: str) -> Dict[str, Any]:
        community = self.store.get_community(community_id)
        if not community:
            raise CommunityNotFound("community not found", community_id=community_id)
        return community

    def _require_admin(self, community: Dict[str, Any], requester_id: str) -> None:
        admin_id = community.get("admin_id")
        if admin_id is None or str(admin_id) != requester_id:
            raise NotAuthorized("only the community admin can do this")

    def _require_proposal(self, proposal_id: str) -> Dict[str, Any]:
        proposal = self.store.get_proposal(proposal_id)
        if not proposal:
            raise ProposalNotFound("proposal not found", proposal_id=proposal_id)
        return proposal

    def _require_voter(self, community_id: str, member_id: str) -> Dict[str, Any]:
        voter = self.store.get_voter(community_id, member_id)
        if not voter:
            raise VoterNotFound("voter not found", member_id=member_id)
        return voter

    def _require_weight(self, weight: Any) -> int:
        if not _is_positive_int(weight):
            raise InvalidRequest("weight must be a positive integer")
        if weight > self.MAX_WEIGHT:
            raise InvalidRequest(f"weight too large (max {self.MAX_WEIGHT})")
        return int(weight)

    @staticmethod
    def _is_expired(proposal: Dict[str, Any], now_ts: int) -> bool:
        ends_at = proposal.get("ends_at")
        return proposal.get("status") == "open" and ends_at is not None and now_ts >= int(ends_at)

    @staticmethod
    def _is_eligible(voter: Optional[Dict[str, Any]]) -> bool:
        return bool(voter) and bool(voter.get("approved")) and _is_positive_int(voter.get("weight"))

    @staticmethod
    def _proposal_summary(proposal: Dict[str, Any]) -> Dict[str, Any]:
        summary = dict(proposal)
        summary.pop("updated_at", None)
        return summary

    # Members

    def register_member(
        self,
        community_id: Any,
        member_id: Any,
        title: str = "",
        username: str = "",
        first_name: str = "",
    ) -> Dict[str, Any]:
        """Record contact from a member in a community.

        Creates the community on first contact, makes the first member to
        reach an admin-less community its admin, and creates or refreshes the
        member's voter record.
        """
        community_id = _clean_id(community_id, "community_id")
        member_id = _clean_id(member_id, "member_id")
        title = (title or "").strip()[: self.MAX_TITLE_LEN]
        now_ts = self._now()

        existing = self.store.get_community(community_id)
        if not title and not existing:
            title = f"Community {community_id}"
        self.store.upsert_community(community_id, title, now_ts)
        admin_assigned = self.store.assign_admin(community_id, member_id, now_ts)
        if admin_assigned:
            self._log(f"ballot: {member_id} is now admin of community {community_id}", "info")

        voter = self.store.get_voter(community_id, member_id)
        name = _display_name(username, first_name, voter["display_name"] if voter else "")
        self.store.upsert_voter(community_id, member_id, name[: self.MAX_NAME_LEN], now_ts)

        return {
            "ok": True,
            "community": self.store.get_community(community_id),
            "voter": self.store.get_voter(community_id, member_id),
            "admin_assigned": admin_assigned,
        }

    def request_join(self, member_id: Any) -> Dict[str, Any]:
        """List the communities where the member still awaits approval.

        Each community admin gets an approval request for the member; a
        failed delivery is logged and leaves the request listed.
        """
        member_id = _clean_id(member_id, "member_id")
        memberships = self.store.list_memberships(member_id)
        requests: List[Dict[str, Any]] = []
        for membership in memberships:
            if membership["approved"] or not membership.get("admin_id"):
                continue
            requests.append(
                {
                    "community_id": membership["community_id"],
                    "title": membership["title"],
                    "admin_id": membership["admin_id"],
                    "display_name": membership["display_name"],
                    "previously_rejected": membership["processed"],
                }
            )
        notified = self._notify_admins(member_id, requests)
        return {
            "ok": True,
            "member_id": member_id,
            "registered": len(memberships) > 0,
            "requests": requests,
            "admins_notified": notified,
        }

    def _notify_admins(self, member_id: str, requests: List[Dict[str, Any]]) -> int:
        if not self.notifier:
            return 0
        notified = 0
        for request in requests:
            try:
                self.notifier.request_approval(request["admin_id"], dict(request, member_id=member_id))
                notified += 1
            except Exception as exc:
                self._log(f"ballot: join request to admin {request['admin_id']} failed: {exc}", "warn")
        return notified

    def _notify_decision(self, community: Dict[str, Any], voter: Dict[str, Any]) -> None:
        if not self.notifier:
            return
        try:
            self.notifier.notify_member_decision(
                voter["member_id"], community, bool(voter["approved"]), voter.get("weight")
            )
        except Exception as exc:
            self._log(f"ballot: decision notice to {voter['member_id']} failed: {exc}", "warn")

    def approve_voter(self, community_id: Any, admin_id: Any, member_id: Any, weight: Any) -> Dict[str, Any]:
        community_id = _clean_id(community_id, "community_id")
        admin_id = _clean_id(admin_id, "admin_id")
        member_id = _clean_id(member_id, "member_id")
        community = self._require_community(community_id)
        self._require_admin(community, admin_id)
        weight = self._require_weight(weight)

        voter = self._require_voter(community_id, member_id)
        if voter["approved"]:
            raise AlreadyProcessed("voter is already approved")

        self.store.set_voter_state(community_id, member_id, True, weight, "approved", self._now())
        self._log(f"ballot: approved {member_id} in {community_id} with weight {weight}", "info")
        approved = self.store.get_voter(community_id, member_id)
        self._notify_decision(community, approved)
        return {"ok": True, "voter": approved}

    def reject_voter(self, community_id: Any, admin_id: Any, member_id: Any) -> Dict[str, Any]:
        community_id = _clean_id(community_id, "community_id")
        admin_id = _clean_id(admin_id, "admin_id")
        member_id = _clean_id(member_id, "member_id")
        community = self._require_community(community_id)
        self._require_admin(community, admin_id)

        voter = self._require_voter(community_id, member_id)
        if voter["approved"]:
            raise AlreadyProcessed("voter is already approved")

        self.store.set_voter_state(community_id, member_id, False, None, "rejected", self._now())
        self._log(f"ballot: rejected {member_id} in {community_id}", "info")
        rejected = self.store.get_voter(community_id, member_id)
        self._notify_decision(community, rejected)
        return {"ok": True, "voter": rejected}

    def set_voter_weight(
        self,
        community_id: Any,
        admin_id: Any,
        member_id: Any,
        weight: Any,
        reason: str = "",
    ) -> Dict[str, Any]:
        """Change an approved voter's weight.

        Votes already cast keep the weight they were cast with; the new
        weight applies from the voter's next vote on each proposal.
        """
        community_id = _clean_id(community_id, "community_id")
        admin_id = _clean_id(admin_id, "admin_id")
        member_id = _clean_id(member_id, "member_id")
        community = self._require_community(community_id)
        self._require_admin(community, admin_id)
        weight = self._require_weight(weight)

        if not isinstance(reason, str):
            raise InvalidRequest("reason must be a string")
        reason = reason.strip()
        if len(reason) > self.MAX_REASON_LEN:
            raise InvalidRequest(f"reason too long (max {self.MAX_REASON_LEN} chars)")
        if not reason or reason.lower() == "skip":
            reason = "unspecified"

        voter = self._require_voter(community_id, member_id)
        if not voter["approved"]:
            raise NotEligible("only approved voters have a weight to change")

        previous_weight = voter.get("weight")
        self.store.set_voter_state(community_id, member_id, True, weight, reason, self._now())
        self._log(
            f"ballot: weight of {member_id} in {community_id} changed {previous_weight} -> {weight} ({reason})",
            "info",
        )
        return {
            "ok": True,
            "previous_weight": previous_weight,
            "voter": self.store.get_voter(community_id, member_id),
        }

    def list_voters(self, community_id: Any, admin_id: Any) -> Dict[str, Any]:
        community_id = _clean_id(community_id, "community_id")
        admin_id = _clean_id(admin_id, "admin_id")
        community = self._require_community(community_id)
        self._require_admin(community, admin_id)
        voters = self.store.list_voters(community_id)
        return {"ok": True, "community_id": community_id, "count": len(voters), "voters": voters}

    def list_admin_communities(self, admin_id: Any) -> Dict[str, Any]:
        admin_id = _clean_id(admin_id, "admin_id")
        communities = self.store.list_communities_for_admin(admin_id)
        return {"ok": True, "admin_id": admin_id, "communities": communities}

    # Proposals

    def _normalize_options(self, options: Any) -> List[str]:
        if not isinstance(options, list):
            raise InvalidProposal("options must be a list of strings")
        cleaned: List[str] = []
        for item in options:
            if not isinstance(item, str):
                raise InvalidProposal("options must be a list of strings")
            value = item.strip()
            if not value:
                raise InvalidProposal("option labels must not be empty")
            if len(value) > self.MAX_OPTION_LEN:
                raise InvalidProposal(f"option label too long (max {self.MAX_OPTION_LEN} chars)")
            if value in cleaned:
                raise InvalidProposal(f"duplicate option {value!r}")
            cleaned.append(value)
        if len(cleaned) < 2 or len(cleaned) > self.MAX_OPTIONS:
            raise InvalidProposal(f"expected 2-{self.MAX_OPTIONS} options")
        return cleaned

    def create_proposal(
        self,
        community_id: Any,
        title: str,
        options: List[Any],
        creator_id: Any,
        quorum_weight: Optional[int] = None,
        ends_at: Optional[int] = None,
        attachment: Optional[str] = None,
    ) -> Dict[str, Any]:
        community_id = _clean_id(community_id, "community_id")
        creator_id = _clean_id(creator_id, "creator_id")
        community = self._require_community(community_id)
        self._require_admin(community, creator_id)

        if not isinstance(title, str) or not title.strip():
            raise InvalidProposal("title is required")
        title = title.strip()
        if len(title) > self.MAX_TITLE_LEN:
            raise InvalidProposal(f"title too long (max {self.MAX_TITLE_LEN} chars)")

        cleaned_options = self._normalize_options(options)

        if quorum_weight is not None:
            if not _is_positive_int(quorum_weight):
                raise InvalidProposal("quorum_weight must be a positive integer")
            if quorum_weight > self.MAX_QUORUM_WEIGHT:
                raise InvalidProposal(f"quorum_weight too large (max {self.MAX_QUORUM_WEIGHT})")

        now_ts = self._now()
        if ends_at is not None and (not _is_positive_int(ends_at) or ends_at <= now_ts):
            raise InvalidProposal("ends_at must be a future unix timestamp")
        if ends_at is not None and ends_at > self.MAX_ENDS_AT:
            raise InvalidProposal("ends_at is too far in the future")

        if attachment is not None:
            if not isinstance(attachment, str) or len(attachment) > self.MAX_ATTACHMENT_LEN:
                raise InvalidProposal("invalid attachment reference")
            attachment = attachment.strip() or None

        proposal_id = self.store.create_proposal(
            community_id=community_id,
            title=title,
            options_json=json.dumps(cleaned_options, separators=(",", ":")),
            created_by=creator_id,
            quorum_weight=quorum_weight,
            ends_at=ends_at,
            attachment=attachment,
            now_ts=now_ts,
        )
        if proposal_id is None:
            raise CommunityNotFound("community not found", community_id=community_id)
        proposal = self._proposal_summary(self._require_proposal(proposal_id))
        self._log(
            f"ballot: opened {proposal_id} in {community_id} with {len(cleaned_options)} options",
            "info",
        )

        delivered, failed = self._fan_out(proposal)
        return {
            "ok": True,
            "proposal": proposal,
            "ballots_delivered": delivered,
            "ballots_failed": failed,
        }

    def _fan_out(self, proposal: Dict[str, Any]) -> Tuple[int, int]:
        if not self.notifier or not self.deliver_ballots:
            return 0, 0

        community_id = str(proposal["community_id"])
        try:
            self.notifier.announce_proposal(community_id, proposal)
        except Exception as exc:
            self._log(f"ballot: announcing {proposal['proposal_id']} failed: {exc}", "warn")

        delivered = failed = 0
        for voter in self.store.list_approved_voters(community_id):
            try:
                self.notifier.deliver_ballot(voter["member_id"], proposal, int(voter["weight"]))
                delivered += 1
            except Exception as exc:
                failed += 1
                self._log(f"ballot: ballot delivery to {voter['member_id']} failed: {exc}", "warn")
        self._log(
            f"ballot: {proposal['proposal_id']} ballots delivered={delivered} failed={failed}",
            "info",
        )
        return delivered, failed

    def cast_vote(self, proposal_id: Any, voter_id: Any, option_index: Any) -> Dict[str, Any]:
        """Cast or replace ``voter_id``'s vote on an open proposal.

        The voter's current weight is recorded with the vote. Casting again
        replaces the previous vote, so the tally never counts a voter twice.
        """
        proposal_id = _clean_id(proposal_id, "proposal_id")
        voter_id = _clean_id(voter_id, "voter_id")
        if isinstance(option_index, bool) or not isinstance(option_index, int):
            raise InvalidOption("option_index must be an integer")

        proposal = self._require_proposal(proposal_id)
        self.sweep_community(str(proposal["community_id"]))

        expired = False
        receipt: Dict[str, Any] = {}
        closed_result: Optional[Dict[str, Any]] = None
        with self._proposal_lock(proposal_id):
            proposal = self._require_proposal(proposal_id)
            if proposal["status"] != "open":
                raise VotingClosed("voting is closed", status=proposal["status"])
            now_ts = self._now()
            if self._is_expired(proposal, now_ts):
                expired = True
                closed_result = self._close_locked(proposal, self.SCHEDULER, now_ts)
            else:
                receipt = self._apply_vote_locked(proposal, voter_id, option_index, now_ts)

        if expired:
            if closed_result is not None:
                self._forget_lock(proposal_id)
                self._publish(closed_result)
            raise VotingClosed("voting has ended", status="closed")
        return receipt

    def _apply_vote_locked(
        self,
        proposal: Dict[str, Any],
        voter_id: str,
        option_index: int,
        now_ts: int,
    ) -> Dict[str, Any]:
        voter = self.store.get_voter(str(proposal["community_id"]), voter_id)
        if not self._is_eligible(voter):
            raise NotEligible("you are not approved to vote here")

        options = proposal["options"]
        if option_index < 0 or option_index >= len(options):
            raise InvalidOption("invalid option", valid_choices=options)

        proposal_id = str(proposal["proposal_id"])
        weight = int(voter["weight"])
        previous = self.store.get_vote(proposal_id, voter_id)
        self.store.upsert_vote(proposal_id, voter_id, option_index, weight, now_ts)

        previous_index = int(previous["option_index"]) if previous else None
        changed = previous is None or previous_index != option_index or int(previous["weight_at_vote_time"]) != weight
        return {
            "ok": True,
            "proposal_id": proposal_id,
            "voter_id": voter_id,
            "option_index": option_index,
            "option_label": options[option_index],
            "weight": weight,
            "previous_option_index": previous_index,
            "changed": changed,
            "voted_at": now_ts,
        }

    def close_proposal(self, proposal_id: Any, requester_id: Any) -> Dict[str, Any]:
        """Close an open proposal on the community admin's command."""
        proposal_id = _clean_id(proposal_id, "proposal_id")
        requester_id = _clean_id(requester_id, "requester_id")

        proposal = self._require_proposal(proposal_id)
        community = self._require_community(str(proposal["community_id"]))
        self._require_admin(community, requester_id)

        with self._proposal_lock(proposal_id):
            proposal = self._require_proposal(proposal_id)
            if proposal["status"] != "open":
                raise AlreadyClosed("proposal is already closed")
            result = self._close_locked(proposal, requester_id, self._now())

        if result is None:
            raise AlreadyClosed("proposal is already closed")
        self._forget_lock(proposal_id)
        self._publish(result)
        return result

    def _close_locked(self, proposal: Dict[str, Any], closed_by: str, now_ts: int) -> Optional[Dict[str, Any]]:
        """Flip status and snapshot the final tally. None if already closed."""
        proposal_id = str(proposal["proposal_id"])
        if not self.store.close_proposal(proposal_id, closed_by, now_ts):
            return None
        closed = self.store.get_proposal(proposal_id) or proposal
        result = self._build_result(closed)
        outcome = result["outcome"]
        self._log(
            f"ballot: closed {proposal_id} by {closed_by}: {outcome['outcome']} "
            f"total={outcome['total_weight']} quorum_reached={result['quorum_reached']}",
            "info",
        )
        return result

    def _build_result(self, proposal: Dict[str, Any]) -> Dict[str, Any]:
        rows = self.store.list_votes_for_proposal(str(proposal["proposal_id"]))
        options = proposal["options"]
        votes = tally.aggregate_votes(rows, len(options))
        outcome = tally.compute_outcome(options, votes)
        quorum_weight = proposal.get("quorum_weight")
        return {
            "ok": True,
            "proposal": self._proposal_summary(proposal),
            "outcome": outcome,
            "votes": votes,
            "vote_count": len(tally.voter_map(rows)),
            "quorum_weight": quorum_weight,
            "quorum_reached": tally.evaluate_quorum(quorum_weight, outcome["total_weight"]),
            "closed_at": proposal.get("closed_at"),
            "closed_by": proposal.get("closed_by"),
        }

    def _publish(self, result: Dict[str, Any]) -> None:
        if not self.notifier or not self.publish_results:
            return
        community_id = str(result["proposal"]["community_id"])
        try:
            self.notifier.publish_result(community_id, result)
        except Exception as exc:
            self._log(
                f"ballot: publishing result of {result['proposal']['proposal_id']} failed: {exc}",
                "warn",
            )

    def get_outcome(self, proposal_id: Any) -> Dict[str, Any]:
        """Current tally of a proposal (final once closed)."""
        proposal_id = _clean_id(proposal_id, "proposal_id")
        proposal = self._require_proposal(proposal_id)
        self.sweep_community(str(proposal["community_id"]))
        return self._build_result(self._require_proposal(proposal_id))

    # Auto-close

    def sweep_community(self, community_id: str) -> List[Dict[str, Any]]:
        """Close every open proposal of a community whose deadline passed.

        Returns the results of proposals closed by this call; proposals
        already closed are skipped, so repeated sweeps publish nothing new.
        """
        now_ts = self._now()
        closed: List[Dict[str, Any]] = []
        for proposal in self.store.list_open_proposals(community_id):
            if not self._is_expired(proposal, now_ts):
                continue
            proposal_id = str(proposal["proposal_id"])
            result = None
            with self._proposal_lock(proposal_id):
                current = self.store.get_proposal(proposal_id)
                if current and self._is_expired(current, now_ts):
                    result = self._close_locked(current, self.SCHEDULER, now_ts)
            if result is not None:
                self._forget_lock(proposal_id)
                closed.append(result)
                self._publish(result)
        return closed

    def sweep_all(self) -> Dict[str, Any]:
        closed: List[str] = []
        for community in self.store.list_communities():
            for result in self.sweep_community(str(community["community_id"])):
                closed.append(result["proposal"]["proposal_id"])
        if closed:
            self._log(f"ballot: sweep closed {len(closed)} expired proposal(s)", "info")
        return {"ok": True, "closed": len(closed), "proposal_ids": closed}

    # Listings

    def list_open_proposals_for_voter(self, voter_id: Any) -> Dict[str, Any]:
        voter_id = _clean_id(voter_id, "voter_id")
        entries: List[Dict[str, Any]] = []
        for membership in self.store.list_memberships(voter_id):
            if not self._is_eligible(membership):
                continue
            community_id = str(membership["community_id"])
            self.sweep_community(community_id)
            for proposal in self.store.list_open_proposals(community_id):
                vote = self.store.get_vote(str(proposal["proposal_id"]), voter_id)
                entry = self._proposal_summary(proposal)
                entry["community_title"] = membership["title"]
                entry["weight"] = membership["weight"]
                entry["current_option_index"] = int(vote["option_index"]) if vote else None
                entries.append(entry)
        return {"ok": True, "voter_id": voter_id, "count": len(entries), "proposals": entries}

    def list_open_proposals_for_admin(self, admin_id: Any) -> Dict[str, Any]:
        admin_id = _clean_id(admin_id, "admin_id")
        entries: List[Dict[str, Any]] = []
        for community in self.store.list_communities_for_admin(admin_id):
            community_id = str(community["community_id"])
            self.sweep_community(community_id)
            for proposal in self.store.list_open_proposals(community_id):
                entry = self._proposal_summary(proposal)
                entry["community_title"] = community["title"]
                entries.append(entry)
        return {"ok": True, "admin_id": admin_id, "count": len(entries), "proposals": entries}

    def voter_votes(self, voter_id: Any, limit: int = 50) -> Dict[str, Any]:
        voter_id = _clean_id(voter_id, "voter_id")
        if not _is_positive_int(limit):
            raise InvalidRequest("limit must be positive")
        limit = min(limit, self.MAX_LIST_LIMIT)

        votes = []
        for row in self.store.list_votes_for_voter(voter_id, limit):
            options = row.pop("options", [])
            idx = int(row["option_index"])
            row["option_label"] = options[idx] if 0 <= idx < len(options) else None
            votes.append(row)
        return {"ok": True, "voter_id": voter_id, "count": len(votes), "votes": votes}

    def status(self) -> Dict[str, Any]:
        return {
            "ok": True,
            "communities": self.store.count_communities(),
            "open_proposals": self.store.count_proposals_by_status("open"),
            "closed_proposals": self.store.count_proposals_by_status("closed"),
            "total_votes": self.store.count_total_votes(),
            "deliver_ballots": self.deliver_ballots,
            "publish_results": self.publish_results,
        }
