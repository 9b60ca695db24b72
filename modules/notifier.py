"""Ballot and result delivery through custom plugin notifications."""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional

from modules.formatting import (
    format_announcement,
    format_ballot,
    format_join_request,
    format_member_decision,
    format_result_summary,
)


class PluginNotifier:
    """Emits ballot traffic as custom notifications on the plugin's stdout.

    Subscribers (a chat bridge, for instance) receive the structured payload
    together with a ready-to-send ``text`` rendering. Every topic in
    ``TOPICS`` must be registered with ``plugin.add_notification_topic``
    before the plugin starts.
    """

    ANNOUNCE_TOPIC = "hive-ballot-announce"
    BALLOT_TOPIC = "hive-ballot-ballot"
    RESULT_TOPIC = "hive-ballot-result"
    JOIN_REQUEST_TOPIC = "hive-ballot-join-request"
    DECISION_TOPIC = "hive-ballot-decision"
    TOPICS = (ANNOUNCE_TOPIC, BALLOT_TOPIC, RESULT_TOPIC, JOIN_REQUEST_TOPIC, DECISION_TOPIC)

    def __init__(self, plugin: Any, logger: Optional[Callable[[str, str], None]] = None):
        self.plugin = plugin
        self._logger = logger

    def _log(self, message: str, level: str = "info") -> None:
        if self._logger:
            self._logger(message, level)

    def _emit(self, topic: str, payload: Dict[str, Any]) -> None:
        self.plugin.notify(topic, payload)
        subject = payload.get("proposal_id") or payload.get("member_id")
        self._log(f"ballot: emitted {topic} for {subject}", "debug")

    def announce_proposal(self, community_id: str, proposal: Dict[str, Any]) -> None:
        self._emit(
            self.ANNOUNCE_TOPIC,
            {
                "community_id": community_id,
                "proposal_id": proposal["proposal_id"],
                "proposal": proposal,
                "text": format_announcement(proposal),
            },
        )

    def deliver_ballot(self, voter_id: str, proposal: Dict[str, Any], weight: int) -> None:
        self._emit(
            self.BALLOT_TOPIC,
            {
                "voter_id": voter_id,
                "proposal_id": proposal["proposal_id"],
                "options": list(proposal.get("options") or []),
                "weight": weight,
                "text": format_ballot(proposal, weight),
            },
        )

    def publish_result(self, community_id: str, result: Dict[str, Any]) -> None:
        outcome = result["outcome"]
        self._emit(
            self.RESULT_TOPIC,
            {
                "community_id": community_id,
                "proposal_id": result["proposal"]["proposal_id"],
                "outcome": outcome,
                "quorum_weight": result.get("quorum_weight"),
                "quorum_reached": result.get("quorum_reached"),
                "closed_by": result.get("closed_by"),
                "text": format_result_summary(result),
            },
        )

    def request_approval(self, admin_id: str, request: Dict[str, Any]) -> None:
        self._emit(
            self.JOIN_REQUEST_TOPIC,
            {
                "admin_id": admin_id,
                "community_id": request["community_id"],
                "member_id": request["member_id"],
                "display_name": request.get("display_name"),
                "previously_rejected": bool(request.get("previously_rejected")),
                "text": format_join_request(request),
            },
        )

    def notify_member_decision(
        self,
        member_id: str,
        community: Dict[str, Any],
        approved: bool,
        weight: Optional[int],
    ) -> None:
        self._emit(
            self.DECISION_TOPIC,
            {
                "member_id": member_id,
                "community_id": community["community_id"],
                "approved": approved,
                "weight": weight if approved else None,
                "text": format_member_decision(community, approved, weight),
            },
        )
