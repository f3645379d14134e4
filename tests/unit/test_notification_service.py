"""Unit tests for the notification inbox service and repository SQL."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.am_common.errors import NotificationNotFoundError
from src.am_notification.application.schemas import cursor_decode, cursor_encode
from src.am_notification.application.service import NotificationApplicationService
from src.am_notification.domain.models import Notification, NotificationDraft
from src.am_notification.infrastructure.persistence import NotificationRepository

_NOW = datetime(2026, 10, 1, 12, 0, tzinfo=UTC)
_USER = "22222222-2222-2222-2222-222222222222"


def _notification(i: int, read: bool = False) -> Notification:
    return Notification(
        id=f"{1000 + i}", user_id=_USER, auction_id="AUC-1", type="OUTBID",
        message=f"msg {i}", read=read, dedup_key=f"evt_{i}:{_USER}:OUTBID",
        created_at=_NOW,
    )


@pytest.fixture
def db():
    session = MagicMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    return session


@pytest.fixture
def mock_repo():
    return MagicMock()


class TestListNotifications:
    async def test_page_and_unread_count(self, db, mock_repo):
        mock_repo.list_for_user = AsyncMock(return_value=[_notification(i) for i in range(3)])
        mock_repo.count_unread = AsyncMock(return_value=7)
        svc = NotificationApplicationService(repo=mock_repo)

        resp = await svc.list_notifications(db, _USER, False, None, limit=2)

        assert len(resp.items) == 2
        assert resp.has_more is True
        assert resp.unread_count == 7
        assert cursor_decode(resp.next_cursor) == "1001"
        assert mock_repo.list_for_user.call_args.args[4] == 3

    async def test_unread_only_forwarded(self, db, mock_repo):
        mock_repo.list_for_user = AsyncMock(return_value=[])
        mock_repo.count_unread = AsyncMock(return_value=0)
        svc = NotificationApplicationService(repo=mock_repo)

        resp = await svc.list_notifications(db, _USER, True, cursor_encode("1005"), limit=20)

        args = mock_repo.list_for_user.call_args.args
        assert args[2] is True
        assert args[3] == "1005"
        assert resp.next_cursor is None


class TestMarkRead:
    async def test_owner_marks_read(self, db, mock_repo):
        mock_repo.mark_read = AsyncMock(return_value=_notification(1, read=True))
        svc = NotificationApplicationService(repo=mock_repo)

        item = await svc.mark_read(db, "1001", _USER)

        assert item.read is True
        db.commit.assert_awaited_once()

    async def test_not_owner_is_not_found(self, db, mock_repo):
        mock_repo.mark_read = AsyncMock(return_value=None)
        svc = NotificationApplicationService(repo=mock_repo)

        with pytest.raises(NotificationNotFoundError) as exc_info:
            await svc.mark_read(db, "1001", "someone-else")

        assert exc_info.value.http_status == 404
        db.rollback.assert_awaited_once()
        db.commit.assert_not_awaited()

    async def test_mark_all_read_returns_count(self, db, mock_repo):
        mock_repo.mark_all_read = AsyncMock(return_value=4)
        svc = NotificationApplicationService(repo=mock_repo)

        resp = await svc.mark_all_read(db, _USER)

        assert resp.updated == 4
        db.commit.assert_awaited_once()

    async def test_unread_count(self, db, mock_repo):
        mock_repo.count_unread = AsyncMock(return_value=2)
        svc = NotificationApplicationService(repo=mock_repo)
        assert (await svc.unread_count(db, _USER)).unread_count == 2


class TestNotificationRepository:
    async def test_insert_many_counts_only_new_rows(self):
        inserted, conflicted = MagicMock(), MagicMock()
        inserted.fetchone.return_value = MagicMock(id="1")
        conflicted.fetchone.return_value = None
        session = MagicMock()
        session.execute = AsyncMock(side_effect=[inserted, conflicted])
        drafts = [
            NotificationDraft(_USER, "AUC-1", "OUTBID", "m", f"evt_1:{_USER}:OUTBID"),
            NotificationDraft(_USER, "AUC-1", "NEW_BID", "m", f"evt_1:{_USER}:NEW_BID"),
        ]

        created = await NotificationRepository().insert_many(session, drafts)

        assert created == 1
        sql = str(session.execute.call_args_list[0].args[0])
        assert "ON CONFLICT (dedup_key) DO NOTHING" in sql

    async def test_mark_read_is_owner_scoped(self):
        result = MagicMock()
        result.fetchone.return_value = None
        session = MagicMock()
        session.execute = AsyncMock(return_value=result)

        assert await NotificationRepository().mark_read(session, "1001", _USER) is None
        assert "user_id = :user_id" in str(session.execute.call_args.args[0])
        assert session.execute.call_args.args[1] == {"id": "1001", "user_id": _USER}
