"""SQLite persistence for communities, voters, proposals, and votes."""

from __future__ import annotations

import json
import os
import sqlite3
import threading
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

from modules.errors import StorageUnavailable


def _decode_voter(row: sqlite3.Row) -> Dict[str, Any]:
    voter = dict(row)
    voter["approved"] = bool(voter.get("approved"))
    voter["processed"] = bool(voter.get("processed"))
    return voter


def _decode_proposal(row: sqlite3.Row) -> Dict[str, Any]:
    proposal = dict(row)
    try:
        options = json.loads(proposal.pop("options_json", None) or "[]")
    except (json.JSONDecodeError, TypeError):
        options = []
    proposal["options"] = [opt for opt in options if isinstance(opt, str)] if isinstance(options, list) else []
    return proposal


class BallotStore:
    """SQLite persistence for ballot communities, voters, proposals, and votes.

    Every public method raises ``StorageUnavailable`` when SQLite fails.
    """

    def __init__(self, db_path: str, logger: Optional[Callable[[str, str], None]] = None):
        self.db_path = os.path.expanduser(db_path)
        self._logger = logger
        self._local = threading.local()

    def _log(self, message: str, level: str = "info") -> None:
        if self._logger:
            self._logger(message, level)

    def _get_connection(self) -> sqlite3.Connection:
        conn = getattr(self._local, "conn", None)
        if conn is None:
            try:
                db_dir = os.path.dirname(self.db_path)
                if db_dir:
                    os.makedirs(db_dir, exist_ok=True)
                conn = sqlite3.connect(
                    self.db_path,
                    isolation_level=None,
                    timeout=30.0,
                )
                conn.row_factory = sqlite3.Row
                conn.execute("PRAGMA journal_mode=WAL;")
                conn.execute("PRAGMA foreign_keys=ON;")
            except (sqlite3.Error, OSError) as exc:
                raise StorageUnavailable(f"cannot open ballot database: {exc}") from exc
            self._local.conn = conn
        return conn

    def _execute(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        conn = self._get_connection()
        try:
            return conn.execute(sql, params)
        except sqlite3.Error as exc:
            self._log(f"ballot: storage error: {exc}", "warn")
            raise StorageUnavailable(f"storage error: {exc}") from exc

    def _fetch_one(self, sql: str, params: Sequence[Any] = ()) -> Optional[sqlite3.Row]:
        try:
            return self._execute(sql, params).fetchone()
        except sqlite3.Error as exc:
            raise StorageUnavailable(f"storage error: {exc}") from exc

    def _fetch_all(self, sql: str, params: Sequence[Any] = ()) -> List[sqlite3.Row]:
        try:
            return self._execute(sql, params).fetchall()
        except sqlite3.Error as exc:
            raise StorageUnavailable(f"storage error: {exc}") from exc

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        conn = self._get_connection()
        try:
            conn.execute("BEGIN IMMEDIATE")
        except sqlite3.Error as exc:
            raise StorageUnavailable(f"storage error: {exc}") from exc
        try:
            yield conn
        except sqlite3.Error as exc:
            self._rollback(conn)
            raise StorageUnavailable(f"storage error: {exc}") from exc
        except BaseException:
            self._rollback(conn)
            raise
        else:
            try:
                conn.execute("COMMIT")
            except sqlite3.Error as exc:
                self._rollback(conn)
                raise StorageUnavailable(f"storage error: {exc}") from exc

    def _rollback(self, conn: sqlite3.Connection) -> None:
        # Leave the thread-local connection outside any transaction.
        if not conn.in_transaction:
            return
        try:
            conn.execute("ROLLBACK")
        except sqlite3.Error as exc:
            self._log(f"ballot: rollback failed, dropping connection: {exc}", "warn")
            self.close()

    def close(self) -> None:
        conn = getattr(self._local, "conn", None)
        if conn is not None:
            conn.close()
            self._local.conn = None

    def initialize(self) -> None:
        self._execute(
            """
            CREATE TABLE IF NOT EXISTS ballot_communities (
                community_id TEXT PRIMARY KEY,
                title TEXT NOT NULL,
                admin_id TEXT,
                proposal_counter INTEGER NOT NULL DEFAULT 1,
                created_at INTEGER NOT NULL,
                updated_at INTEGER NOT NULL
            )
            """
        )
        self._execute(
            """
            CREATE INDEX IF NOT EXISTS idx_ballot_communities_admin
            ON ballot_communities(admin_id)
            """
        )

        self._execute(
            """
            CREATE TABLE IF NOT EXISTS ballot_voters (
                community_id TEXT NOT NULL,
                member_id TEXT NOT NULL,
                display_name TEXT NOT NULL,
                approved INTEGER NOT NULL DEFAULT 0,
                weight INTEGER,
                processed INTEGER NOT NULL DEFAULT 0,
                last_change_reason TEXT,
                last_modified_at INTEGER,
                created_at INTEGER NOT NULL,
                updated_at INTEGER NOT NULL,
                PRIMARY KEY(community_id, member_id),
                FOREIGN KEY(community_id) REFERENCES ballot_communities(community_id)
            )
            """
        )
        self._execute(
            """
            CREATE INDEX IF NOT EXISTS idx_ballot_voters_member
            ON ballot_voters(member_id)
            """
        )

        self._execute(
            """
            CREATE TABLE IF NOT EXISTS ballot_proposals (
                proposal_id TEXT PRIMARY KEY,
                community_id TEXT NOT NULL,
                number INTEGER NOT NULL,
                title TEXT NOT NULL,
                options_json TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'open',
                quorum_weight INTEGER,
                ends_at INTEGER,
                created_by TEXT NOT NULL,
                attachment TEXT,
                created_at INTEGER NOT NULL,
                updated_at INTEGER NOT NULL,
                closed_at INTEGER,
                closed_by TEXT,
                FOREIGN KEY(community_id) REFERENCES ballot_communities(community_id),
                UNIQUE(community_id, number)
            )
            """
        )
        self._execute(
            """
            CREATE INDEX IF NOT EXISTS idx_ballot_proposals_community_status
            ON ballot_proposals(community_id, status)
            """
        )

        self._execute(
            """
            CREATE TABLE IF NOT EXISTS ballot_votes (
                proposal_id TEXT NOT NULL,
                voter_id TEXT NOT NULL,
                option_index INTEGER NOT NULL,
                weight_at_vote_time INTEGER NOT NULL,
                voted_at INTEGER NOT NULL,
                PRIMARY KEY(proposal_id, voter_id),
                FOREIGN KEY(proposal_id) REFERENCES ballot_proposals(proposal_id)
            )
            """
        )
        self._execute(
            """
            CREATE INDEX IF NOT EXISTS idx_ballot_votes_voter
            ON ballot_votes(voter_id, voted_at DESC)
            """
        )

        self._execute("PRAGMA optimize;")

    # Communities

    def get_community(self, community_id: str) -> Optional[Dict[str, Any]]:
        row = self._fetch_one(
            "SELECT * FROM ballot_communities WHERE community_id = ?",
            (community_id,),
        )
        return dict(row) if row else None

    def upsert_community(self, community_id: str, title: str, now_ts: int) -> None:
        """Create the community, or refresh its title when a new one is given."""
        self._execute(
            """
            INSERT INTO ballot_communities (
                community_id, title, admin_id, proposal_counter, created_at, updated_at
            ) VALUES (?, ?, NULL, 1, ?, ?)
            ON CONFLICT(community_id) DO UPDATE SET
                title = CASE
                    WHEN excluded.title != '' AND excluded.title != ballot_communities.title
                    THEN excluded.title
                    ELSE ballot_communities.title
                END,
                updated_at = excluded.updated_at
            """,
            (community_id, title, now_ts, now_ts),
        )

    def assign_admin(self, community_id: str, admin_id: str, now_ts: int) -> bool:
        """Set the admin only if none is set yet. Returns True when assigned."""
        cursor = self._execute(
            """
            UPDATE ballot_communities SET admin_id = ?, updated_at = ?
            WHERE community_id = ? AND admin_id IS NULL
            """,
            (admin_id, now_ts, community_id),
        )
        return cursor.rowcount > 0

    def list_communities(self) -> List[Dict[str, Any]]:
        rows = self._fetch_all("SELECT * FROM ballot_communities ORDER BY created_at ASC, community_id ASC")
        return [dict(row) for row in rows]

    def list_communities_for_admin(self, admin_id: str) -> List[Dict[str, Any]]:
        rows = self._fetch_all(
            "SELECT * FROM ballot_communities WHERE admin_id = ? ORDER BY created_at ASC, community_id ASC",
            (admin_id,),
        )
        return [dict(row) for row in rows]

    def count_communities(self) -> int:
        row = self._fetch_one("SELECT COUNT(*) AS cnt FROM ballot_communities")
        return int(row["cnt"] or 0) if row else 0

    # Voters

    def get_voter(self, community_id: str, member_id: str) -> Optional[Dict[str, Any]]:
        row = self._fetch_one(
            "SELECT * FROM ballot_voters WHERE community_id = ? AND member_id = ?",
            (community_id, member_id),
        )
        return _decode_voter(row) if row else None

    def upsert_voter(self, community_id: str, member_id: str, display_name: str, now_ts: int) -> None:
        """Create an unprocessed voter record, or refresh the display name."""
        self._execute(
            """
            INSERT INTO ballot_voters (
                community_id, member_id, display_name, approved, weight,
                processed, created_at, updated_at
            ) VALUES (?, ?, ?, 0, NULL, 0, ?, ?)
            ON CONFLICT(community_id, member_id) DO UPDATE SET
                display_name = excluded.display_name,
                updated_at = excluded.updated_at
            """,
            (community_id, member_id, display_name, now_ts, now_ts),
        )

    def set_voter_state(
        self,
        community_id: str,
        member_id: str,
        approved: bool,
        weight: Optional[int],
        reason: Optional[str],
        now_ts: int,
    ) -> None:
        """Record an admin decision: approval, rejection, or a weight change."""
        self._execute(
            """
            UPDATE ballot_voters SET
                approved = ?, weight = ?, processed = 1,
                last_change_reason = ?, last_modified_at = ?, updated_at = ?
            WHERE community_id = ? AND member_id = ?
            """,
            (1 if approved else 0, weight, reason, now_ts, now_ts, community_id, member_id),
        )

    def list_voters(self, community_id: str) -> List[Dict[str, Any]]:
        rows = self._fetch_all(
            "SELECT * FROM ballot_voters WHERE community_id = ? ORDER BY created_at ASC, member_id ASC",
            (community_id,),
        )
        return [_decode_voter(row) for row in rows]

    def list_approved_voters(self, community_id: str) -> List[Dict[str, Any]]:
        rows = self._fetch_all(
            """
            SELECT * FROM ballot_voters
            WHERE community_id = ? AND approved = 1 AND weight > 0
            ORDER BY created_at ASC, member_id ASC
            """,
            (community_id,),
        )
        return [_decode_voter(row) for row in rows]

    def list_memberships(self, member_id: str) -> List[Dict[str, Any]]:
        """Voter records of one member across all communities, with titles."""
        rows = self._fetch_all(
            """
            SELECT v.*, c.title, c.admin_id
            FROM ballot_voters v
            JOIN ballot_communities c ON c.community_id = v.community_id
            WHERE v.member_id = ?
            ORDER BY v.created_at ASC
            """,
            (member_id,),
        )
        return [_decode_voter(row) for row in rows]

    # Proposals

    def create_proposal(
        self,
        community_id: str,
        title: str,
        options_json: str,
        created_by: str,
        quorum_weight: Optional[int],
        ends_at: Optional[int],
        attachment: Optional[str],
        now_ts: int,
    ) -> Optional[str]:
        """Allocate the next community-local number and insert an open proposal.

        Returns the new proposal id, or None when the community is unknown.
        """
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT proposal_counter FROM ballot_communities WHERE community_id = ?",
                (community_id,),
            ).fetchone()
            if not row:
                return None
            number = int(row["proposal_counter"])
            proposal_id = f"c{community_id}_p{number}"
            conn.execute(
                """
                UPDATE ballot_communities SET proposal_counter = ?, updated_at = ?
                WHERE community_id = ?
                """,
                (number + 1, now_ts, community_id),
            )
            conn.execute(
                """
                INSERT INTO ballot_proposals (
                    proposal_id, community_id, number, title, options_json, status,
                    quorum_weight, ends_at, created_by, attachment, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, 'open', ?, ?, ?, ?, ?, ?)
                """,
                (
                    proposal_id,
                    community_id,
                    number,
                    title,
                    options_json,
                    quorum_weight,
                    ends_at,
                    created_by,
                    attachment,
                    now_ts,
                    now_ts,
                ),
            )
        return proposal_id

    def get_proposal(self, proposal_id: str) -> Optional[Dict[str, Any]]:
        row = self._fetch_one(
            "SELECT * FROM ballot_proposals WHERE proposal_id = ?",
            (proposal_id,),
        )
        return _decode_proposal(row) if row else None

    def list_open_proposals(self, community_id: str) -> List[Dict[str, Any]]:
        rows = self._fetch_all(
            """
            SELECT * FROM ballot_proposals
            WHERE community_id = ? AND status = 'open'
            ORDER BY number ASC
            """,
            (community_id,),
        )
        return [_decode_proposal(row) for row in rows]

    def close_proposal(self, proposal_id: str, closed_by: str, now_ts: int) -> bool:
        """Flip an open proposal to closed. Returns False if it was not open."""
        cursor = self._execute(
            """
            UPDATE ballot_proposals
            SET status = 'closed', closed_at = ?, closed_by = ?, updated_at = ?
            WHERE proposal_id = ? AND status = 'open'
            """,
            (now_ts, closed_by, now_ts, proposal_id),
        )
        return cursor.rowcount > 0

    def count_proposals_by_status(self, status: str) -> int:
        row = self._fetch_one(
            "SELECT COUNT(*) AS cnt FROM ballot_proposals WHERE status = ?",
            (status,),
        )
        return int(row["cnt"] or 0) if row else 0

    # Votes

    def upsert_vote(
        self,
        proposal_id: str,
        voter_id: str,
        option_index: int,
        weight: int,
        voted_at: int,
    ) -> None:
        """Insert or replace the single active vote of a voter on a proposal."""
        self._execute(
            """
            INSERT INTO ballot_votes (
                proposal_id, voter_id, option_index, weight_at_vote_time, voted_at
            ) VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(proposal_id, voter_id) DO UPDATE SET
                option_index = excluded.option_index,
                weight_at_vote_time = excluded.weight_at_vote_time,
                voted_at = excluded.voted_at
            """,
            (proposal_id, voter_id, option_index, weight, voted_at),
        )

    def get_vote(self, proposal_id: str, voter_id: str) -> Optional[Dict[str, Any]]:
        row = self._fetch_one(
            "SELECT * FROM ballot_votes WHERE proposal_id = ? AND voter_id = ?",
            (proposal_id, voter_id),
        )
        return dict(row) if row else None

    def list_votes_for_proposal(self, proposal_id: str) -> List[Dict[str, Any]]:
        rows = self._fetch_all(
            "SELECT * FROM ballot_votes WHERE proposal_id = ? ORDER BY voted_at ASC, voter_id ASC",
            (proposal_id,),
        )
        return [dict(row) for row in rows]

    def list_votes_for_voter(self, voter_id: str, limit: int) -> List[Dict[str, Any]]:
        rows = self._fetch_all(
            """
            SELECT v.proposal_id, v.option_index, v.weight_at_vote_time, v.voted_at,
                   p.community_id, p.title, p.status, p.ends_at, p.options_json
            FROM ballot_votes v
            JOIN ballot_proposals p ON p.proposal_id = v.proposal_id
            WHERE v.voter_id = ?
            ORDER BY v.voted_at DESC
            LIMIT ?
            """,
            (voter_id, limit),
        )
        return [_decode_proposal(row) for row in rows]

    def count_total_votes(self) -> int:
        row = self._fetch_one("SELECT COUNT(*) AS cnt FROM ballot_votes")
        return int(row["cnt"] or 0) if row else 0
