"""SQLite state store for QuantPilot."""

import json
import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError

from quantpilot.models import (
    AccountMode,
    RiskConfiguration,
    SafetyState,
    Trade,
)

logger = logging.getLogger(__name__)

RISK_KEY = "risk_configuration"
SAFETY_KEY = "safety_state"
SESSION_KEY = "session"


class SessionInfo(BaseModel):
    """Operator session details persisted between runs."""

    mode: AccountMode = Field(default=AccountMode.TRIAL)
    operator: Optional[str] = Field(default=None)


class PersistedState(BaseModel):
    """Everything the engine saves between runs."""

    trades: list[Trade] = Field(default_factory=list)
    balances: dict[AccountMode, float] = Field(default_factory=dict)
    risk: RiskConfiguration = Field(default_factory=RiskConfiguration)
    safety: SafetyState = Field(default_factory=SafetyState)
    session: SessionInfo = Field(default_factory=SessionInfo)


class StateStore:
    """SQLite-based persistence for trades, balances and settings.

    Unreadable data never crashes the engine: corrupt rows are skipped or
    replaced by defaults, and a database file that SQLite cannot open is
    discarded and recreated.
    """

    REQUIRED_TABLES = [
        "trades",
        "balances",
        "settings",
    ]

    def __init__(self, db_path: Path):
        """Initialize the store.

        Args:
            db_path: Path to the SQLite database file.
        """
        self.db_path = db_path
        self._ensure_db_dir()
        try:
            self._init_schema()
        except sqlite3.DatabaseError as e:
            self._discard(e)

    def _ensure_db_dir(self) -> None:
        """Ensure the database directory exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def _get_connection(self) -> sqlite3.Connection:
        """Get a database connection."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _discard(self, error: Exception) -> None:
        """Drop an unreadable database file and start from an empty schema."""
        logger.warning("Discarding unreadable state database %s: %s", self.db_path, error)
        self.db_path.unlink(missing_ok=True)
        self._init_schema()

    def _init_schema(self) -> None:
        """Initialize database schema on first run."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS trades (
                    id TEXT PRIMARY KEY,
                    pair TEXT NOT NULL,
                    side TEXT NOT NULL,
                    entry_price REAL NOT NULL,
                    exit_price REAL,
                    amount REAL NOT NULL,
                    status TEXT NOT NULL,
                    pnl REAL,
                    opened_at TEXT NOT NULL,
                    closed_at TEXT,
                    stop_loss REAL NOT NULL,
                    take_profit REAL NOT NULL,
                    stop_loss_pct REAL NOT NULL,
                    take_profit_pct REAL NOT NULL,
                    mode TEXT NOT NULL,
                    origin TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS balances (
                    mode TEXT PRIMARY KEY,
                    amount REAL NOT NULL
                )
            """)

            # JSON blobs keyed by name (risk configuration, safety, session)
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS settings (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            """)

            conn.commit()
        finally:
            conn.close()

    def get_tables(self) -> list[str]:
        """Get list of all tables in the database."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%'"
            )
            return [row["name"] for row in cursor.fetchall()]
        finally:
            conn.close()

    # ==================== Trades ====================

    @staticmethod
    def _write_trade(cursor: sqlite3.Cursor, trade: Trade) -> None:
        cursor.execute(
            """
            INSERT OR REPLACE INTO trades
            (id, pair, side, entry_price, exit_price, amount, status, pnl,
             opened_at, closed_at, stop_loss, take_profit, stop_loss_pct,
             take_profit_pct, mode, origin)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                trade.id,
                trade.pair,
                trade.side.value,
                trade.entry_price,
                trade.exit_price,
                trade.amount,
                trade.status.value,
                trade.pnl,
                trade.opened_at.isoformat(),
                trade.closed_at.isoformat() if trade.closed_at else None,
                trade.stop_loss,
                trade.take_profit,
                trade.stop_loss_pct,
                trade.take_profit_pct,
                trade.mode.value,
                trade.origin.value,
            ),
        )

    def save_trade(self, trade: Trade) -> None:
        """Insert or update a trade.

        Args:
            trade: Trade to save.
        """
        conn = self._get_connection()
        try:
            self._write_trade(conn.cursor(), trade)
            conn.commit()
        finally:
            conn.close()

    def get_trades(self) -> list[Trade]:
        """Get all trades, newest first. Unreadable rows are skipped.

        Returns:
            List of trades.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM trades ORDER BY opened_at DESC")
            trades = []
            for row in cursor.fetchall():
                try:
                    data = dict(row)
                    data["opened_at"] = datetime.fromisoformat(data["opened_at"])
                    if data["closed_at"]:
                        data["closed_at"] = datetime.fromisoformat(data["closed_at"])
                    trades.append(Trade.model_validate(data))
                except (ValidationError, ValueError, TypeError) as e:
                    logger.warning("Skipping corrupt trade row %s: %s", row["id"], e)
            return trades
        finally:
            conn.close()

    # ==================== Balances ====================

    @staticmethod
    def _write_balance(cursor: sqlite3.Cursor, mode: AccountMode, amount: float) -> None:
        cursor.execute(
            "INSERT OR REPLACE INTO balances (mode, amount) VALUES (?, ?)",
            (mode.value, amount),
        )

    def get_balances(self) -> dict[AccountMode, float]:
        """Get saved balances. Unknown modes and non-numeric rows are skipped."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("SELECT mode, amount FROM balances")
            balances = {}
            for row in cursor.fetchall():
                try:
                    balances[AccountMode(row["mode"])] = float(row["amount"])
                except (ValueError, TypeError) as e:
                    logger.warning("Skipping corrupt balance row %s: %s", row["mode"], e)
            return balances
        finally:
            conn.close()

    # ==================== Settings ====================

    def save_setting(self, key: str, value: BaseModel) -> None:
        """Save a settings blob as JSON."""
        conn = self._get_connection()
        try:
            conn.execute(
                "INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)",
                (key, value.model_dump_json()),
            )
            conn.commit()
        finally:
            conn.close()

    def get_setting(self, key: str, model: type[BaseModel]) -> Optional[BaseModel]:
        """Load a settings blob.

        Args:
            key: Settings key.
            model: Pydantic model to validate against.

        Returns:
            The validated model, or None if missing or corrupt.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("SELECT value FROM settings WHERE key = ?", (key,))
            row = cursor.fetchone()
        finally:
            conn.close()

        if row is None:
            return None
        try:
            return model.model_validate(json.loads(row["value"]))
        except (json.JSONDecodeError, ValidationError, TypeError) as e:
            logger.warning("Ignoring corrupt setting '%s': %s", key, e)
            return None

    # ==================== Whole state ====================

    def load(self) -> PersistedState:
        """Load the full engine state, falling back to defaults.

        Returns:
            PersistedState with defaults for anything missing or corrupt.
        """
        try:
            return PersistedState(
                trades=self.get_trades(),
                balances=self.get_balances(),
                risk=self.get_setting(RISK_KEY, RiskConfiguration) or RiskConfiguration(),
                safety=self.get_setting(SAFETY_KEY, SafetyState) or SafetyState(),
                session=self.get_setting(SESSION_KEY, SessionInfo) or SessionInfo(),
            )
        except sqlite3.DatabaseError as e:
            self._discard(e)
            return PersistedState()

    def save(self, state: PersistedState) -> None:
        """Write the full engine state in one transaction.

        Args:
            state: State to persist.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            for trade in state.trades:
                self._write_trade(cursor, trade)
            for mode, amount in state.balances.items():
                self._write_balance(cursor, mode, amount)
            for key, value in (
                (RISK_KEY, state.risk),
                (SAFETY_KEY, state.safety),
                (SESSION_KEY, state.session),
            ):
                cursor.execute(
                    "INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)",
                    (key, value.model_dump_json()),
                )
            conn.commit()
        finally:
            conn.close()
