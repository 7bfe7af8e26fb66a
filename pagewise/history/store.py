"""Ordered per-conversation history of interpreted answers."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, delete, func, select
from sqlalchemy.orm import Session, sessionmaker

from ..config import HistoryConfig
from ..intents.schemas import DecodedResult
from ..intents.validate import validate_payload
from ..logging_utils import get_logger
from .models import Base, ConversationTurnRecord


class HistoryStore:
    """Store ``(prompt, DecodedResult)`` pairs keyed by a caller-chosen id."""

    def __init__(self, config: HistoryConfig | None = None) -> None:
        self._config = config or HistoryConfig()
        self._log = get_logger("history")
        engine_kwargs: dict = {"echo": self._config.echo, "pool_pre_ping": True}
        if not self._config.url.startswith("sqlite"):
            engine_kwargs.update(pool_size=5, max_overflow=10, pool_recycle=1800)
        self._engine = create_engine(self._config.url, **engine_kwargs)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        self._log.info("History store connected at {}", self._config.url)

    @contextmanager
    def session(self) -> Iterator[Session]:
        session: Session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def append(self, conversation_id: str, prompt: str, result: DecodedResult) -> int:
        """Append one turn and return its position within the conversation."""

        with self.session() as session:
            last = session.scalar(
                select(func.max(ConversationTurnRecord.position)).where(
                    ConversationTurnRecord.conversation_id == conversation_id
                )
            )
            position = 0 if last is None else last + 1
            session.add(
                ConversationTurnRecord(
                    conversation_id=conversation_id,
                    position=position,
                    prompt=prompt,
                    intent=result.intent.value,
                    payload=result.payload.model_dump(mode="json", exclude_none=True),
                    recovered=result.recovered,
                    synthetic=result.synthetic,
                )
            )
        return position

    def list(self, conversation_id: str) -> list[tuple[str, DecodedResult]]:
        with self.session() as session:
            rows = session.scalars(
                select(ConversationTurnRecord)
                .where(ConversationTurnRecord.conversation_id == conversation_id)
                .order_by(ConversationTurnRecord.position)
            ).all()
            return [(row.prompt, _to_result(row)) for row in rows]

    def clear(self, conversation_id: str) -> int:
        with self.session() as session:
            deleted = session.execute(
                delete(ConversationTurnRecord).where(
                    ConversationTurnRecord.conversation_id == conversation_id
                )
            )
            count = deleted.rowcount or 0
        self._log.info("Cleared {} turns from conversation {}", count, conversation_id)
        return count

    def close(self) -> None:
        self._engine.dispose()


def _to_result(row: ConversationTurnRecord) -> DecodedResult:
    payload = validate_payload({**row.payload, "intent": row.intent})
    return DecodedResult(payload=payload, recovered=row.recovered, synthetic=row.synthetic)
