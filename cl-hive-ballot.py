#!/usr/bin/env python3
"""cl-hive-ballot: private weighted ballots for hive communities."""

from __future__ import annotations

import json
import os
import sys
from typing import Any, Callable, Dict

# Ensure this script's real directory is on sys.path so that `from modules.X`
# works even when CLN loads the plugin via a symlink in the plugins directory.
sys.path.insert(0, os.path.dirname(os.path.realpath(__file__)))

from pyln.client import Plugin

from modules.ballot_service import BallotService
from modules.ballot_store import BallotStore
from modules.errors import BallotError
from modules.notifier import PluginNotifier

plugin = Plugin()
service: BallotService | None = None


plugin.add_option(
    name="hive-ballot-db-path",
    default="~/.lightning/cl_hive_ballot.db",
    description="SQLite path for cl-hive-ballot state",
)

plugin.add_option(
    name="hive-ballot-deliver-ballots",
    default="true",
    description="Emit a ballot notification to every approved voter when a proposal opens",
)

plugin.add_option(
    name="hive-ballot-publish-results",
    default="true",
    description="Emit a result notification when a proposal closes",
)

for _topic in PluginNotifier.TOPICS:
    plugin.add_notification_topic(_topic)


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return False


def _parse_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _parse_optional_int(value: Any) -> Any:
    # 0 / "" / None mean "not set"; anything else non-numeric is passed through for validation
    if value in (None, "", 0, "0"):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return value


def _logger(message: str, level: str = "info") -> None:
    plugin.log(message, level=level)


def _require_service() -> BallotService:
    if service is None:
        raise RuntimeError("service not initialized")
    return service


def _call(fn: Callable[..., Dict[str, Any]], *args: Any, **kwargs: Any) -> Dict[str, Any]:
    try:
        return fn(*args, **kwargs)
    except BallotError as exc:
        return exc.to_reply()


@plugin.init()
def init(options: Dict[str, Any], configuration: Dict[str, Any], plugin: Plugin, **kwargs: Any) -> None:
    del kwargs

    db_path_opt = str(options.get("hive-ballot-db-path") or "~/.lightning/cl_hive_ballot.db")
    db_path = os.path.expanduser(db_path_opt)
    if not os.path.isabs(db_path):
        lightning_dir = str(configuration.get("lightning-dir") or os.path.expanduser("~/.lightning"))
        db_path = os.path.join(lightning_dir, db_path)

    deliver_ballots = _parse_bool(options.get("hive-ballot-deliver-ballots"))
    publish_results = _parse_bool(options.get("hive-ballot-publish-results"))

    store = BallotStore(db_path=db_path, logger=_logger)

    global service
    service = BallotService(
        store=store,
        notifier=PluginNotifier(plugin, logger=_logger),
        logger=_logger,
        deliver_ballots=deliver_ballots,
        publish_results=publish_results,
    )

    swept = _call(service.sweep_all)
    plugin.log(
        "cl-hive-ballot initialized "
        f"(db_path={db_path}, deliver_ballots={deliver_ballots}, "
        f"publish_results={publish_results}, closed_on_start={swept.get('closed', 0)})"
    )


@plugin.method("hive-ballot-register")
def hive_ballot_register(
    plugin: Plugin,
    community_id: str,
    member_id: str,
    title: str = "",
    username: str = "",
    first_name: str = "",
) -> Dict[str, Any]:
    del plugin
    return _call(
        _require_service().register_member,
        community_id=community_id,
        member_id=member_id,
        title=title,
        username=username,
        first_name=first_name,
    )


@plugin.method("hive-ballot-join")
def hive_ballot_join(plugin: Plugin, member_id: str) -> Dict[str, Any]:
    del plugin
    return _call(_require_service().request_join, member_id=member_id)


@plugin.method("hive-ballot-approve")
def hive_ballot_approve(
    plugin: Plugin,
    community_id: str,
    admin_id: str,
    member_id: str,
    weight: int = 1,
) -> Dict[str, Any]:
    del plugin
    return _call(
        _require_service().approve_voter,
        community_id=community_id,
        admin_id=admin_id,
        member_id=member_id,
        weight=_parse_int(weight, 0),
    )


@plugin.method("hive-ballot-reject")
def hive_ballot_reject(plugin: Plugin, community_id: str, admin_id: str, member_id: str) -> Dict[str, Any]:
    del plugin
    return _call(
        _require_service().reject_voter,
        community_id=community_id,
        admin_id=admin_id,
        member_id=member_id,
    )


@plugin.method("hive-ballot-setweight")
def hive_ballot_setweight(
    plugin: Plugin,
    community_id: str,
    admin_id: str,
    member_id: str,
    weight: int,
    reason: str = "",
) -> Dict[str, Any]:
    del plugin
    return _call(
        _require_service().set_voter_weight,
        community_id=community_id,
        admin_id=admin_id,
        member_id=member_id,
        weight=_parse_int(weight, 0),
        reason=reason,
    )


@plugin.method("hive-ballot-voters")
def hive_ballot_voters(plugin: Plugin, community_id: str, admin_id: str) -> Dict[str, Any]:
    del plugin
    return _call(_require_service().list_voters, community_id=community_id, admin_id=admin_id)


@plugin.method("hive-ballot-communities")
def hive_ballot_communities(plugin: Plugin, admin_id: str) -> Dict[str, Any]:
    del plugin
    return _call(_require_service().list_admin_communities, admin_id=admin_id)


@plugin.method("hive-proposal-create")
def hive_proposal_create(
    plugin: Plugin,
    community_id: str,
    creator_id: str,
    title: str,
    options_json: str,
    quorum_weight: int = 0,
    ends_at: int = 0,
    attachment: str = "",
) -> Dict[str, Any]:
    del plugin

    try:
        options = json.loads(options_json)
    except (json.JSONDecodeError, TypeError):
        return {"error": "invalid options_json", "code": "invalid_proposal"}

    return _call(
        _require_service().create_proposal,
        community_id=community_id,
        title=title,
        options=options,
        creator_id=creator_id,
        quorum_weight=_parse_optional_int(quorum_weight),
        ends_at=_parse_optional_int(ends_at),
        attachment=attachment or None,
    )


@plugin.method("hive-proposal-vote")
def hive_proposal_vote(plugin: Plugin, proposal_id: str, voter_id: str, option_index: int) -> Dict[str, Any]:
    del plugin
    return _call(
        _require_service().cast_vote,
        proposal_id=proposal_id,
        voter_id=voter_id,
        option_index=_parse_int(option_index, -1),
    )


@plugin.method("hive-proposal-close")
def hive_proposal_close(plugin: Plugin, proposal_id: str, requester_id: str) -> Dict[str, Any]:
    del plugin
    return _call(_require_service().close_proposal, proposal_id=proposal_id, requester_id=requester_id)


@plugin.method("hive-proposal-outcome")
def hive_proposal_outcome(plugin: Plugin, proposal_id: str) -> Dict[str, Any]:
    del plugin
    return _call(_require_service().get_outcome, proposal_id=proposal_id)


@plugin.method("hive-proposal-open")
def hive_proposal_open(plugin: Plugin, voter_id: str) -> Dict[str, Any]:
    del plugin
    return _call(_require_service().list_open_proposals_for_voter, voter_id=voter_id)


@plugin.method("hive-proposal-closable")
def hive_proposal_closable(plugin: Plugin, admin_id: str) -> Dict[str, Any]:
    del plugin
    return _call(_require_service().list_open_proposals_for_admin, admin_id=admin_id)


@plugin.method("hive-ballot-my-votes")
def hive_ballot_my_votes(plugin: Plugin, voter_id: str, limit: int = 50) -> Dict[str, Any]:
    del plugin
    return _call(_require_service().voter_votes, voter_id=voter_id, limit=_parse_int(limit, 50))


@plugin.method("hive-ballot-sweep")
def hive_ballot_sweep(plugin: Plugin) -> Dict[str, Any]:
    del plugin
    return _call(_require_service().sweep_all)


@plugin.method("hive-ballot-status")
def hive_ballot_status(plugin: Plugin) -> Dict[str, Any]:
    del plugin
    return _call(_require_service().status)


if __name__ == "__main__":
    plugin.run()
