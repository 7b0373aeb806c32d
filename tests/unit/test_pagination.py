"""Unit tests for cursor and offset pagination helpers."""

import base64
import json
import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from sqlalchemy import select

from libs.db.pagination import (
    DEFAULT_LIMIT,
    MAX_LIMIT,
    CursorParams,
    InvalidCursorError,
    PageParams,
    PaginationInfo,
    clamp_limit,
    cursor_for,
    decode_cursor,
    encode_cursor,
    paginate_cursor,
    process_cursor_result,
)
from services.clubs_service.models import Community
from tests.factories import CommunityFactory

BASE_TIME = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _rows(count: int):
    return [
        SimpleNamespace(id=uuid.uuid4(), created_at=BASE_TIME + timedelta(minutes=i))
        for i in range(count)
    ]


class TestLimitClamping:
    def test_defaults_when_missing(self):
        assert clamp_limit(None) == DEFAULT_LIMIT

    @pytest.mark.parametrize("raw, expected", [(0, 1), (-5, 1), (7, 7), (1000, MAX_LIMIT)])
    def test_clamps_into_range(self, raw, expected):
        assert clamp_limit(raw) == expected

    def test_params_clamp_instead_of_rejecting(self):
        assert CursorParams(limit=500).limit == MAX_LIMIT
        assert CursorParams(limit=0).limit == 1


class TestCursorEncoding:
    def test_round_trip_preserves_value_and_id(self):
        entity_id = uuid.uuid4()
        decoded = decode_cursor(encode_cursor(BASE_TIME, entity_id))

        assert decoded.entity_id == entity_id
        assert decoded.value == BASE_TIME.isoformat()

    def test_naive_datetimes_are_encoded_as_utc(self):
        naive = BASE_TIME.replace(tzinfo=None)
        decoded = decode_cursor(encode_cursor(naive, uuid.uuid4()))
        assert decoded.value.endswith("+00:00")

    def test_bare_iso_timestamp_is_accepted(self):
        decoded = decode_cursor("2026-03-01T12:00:00Z")
        assert decoded.value == BASE_TIME
        assert decoded.entity_id is None

    @pytest.mark.parametrize(
        "cursor",
        [
            "not-a-cursor!!",
            base64.urlsafe_b64encode(b"[1, 2]").decode(),
            base64.urlsafe_b64encode(json.dumps({"v": "x"}).encode()).decode(),
            base64.urlsafe_b64encode(json.dumps({"v": "x", "id": "nope"}).encode()).decode(),
        ],
    )
    def test_malformed_cursor_raises(self, cursor):
        with pytest.raises(InvalidCursorError) as exc_info:
            decode_cursor(cursor)
        assert exc_info.value.status_code == 400
        assert exc_info.value.code == "INVALID_CURSOR"


class TestProcessCursorResult:
    def test_forward_page_with_more(self):
        rows = _rows(4)
        page = process_cursor_result(rows, CursorParams(limit=3))

        assert page.data == rows[:3]
        assert page.has_more is True
        assert page.has_previous is False
        assert page.next_cursor == cursor_for(rows[2])
        assert page.prev_cursor is None

    def test_forward_last_page(self):
        rows = _rows(2)
        page = process_cursor_result(rows, CursorParams(limit=3))

        assert page.data == rows
        assert page.has_more is False
        assert page.next_cursor is None

    def test_backward_page_is_returned_in_ascending_order(self):
        # Backward queries read newest-first
        rows = list(reversed(_rows(4)))
        page = process_cursor_result(
            rows, CursorParams(limit=3, direction="backward")
        )

        assert [r.created_at for r in page.data] == sorted(
            r.created_at for r in page.data
        )
        assert page.has_previous is True
        assert page.has_more is False
        assert page.prev_cursor == cursor_for(page.data[0])
        assert page.next_cursor is None


@pytest.mark.asyncio
class TestPaginateCursorQueries:
    async def _seed(self, db_session, count: int, same_time: bool = False):
        communities = [
            CommunityFactory.create(
                created_at=BASE_TIME if same_time else BASE_TIME + timedelta(minutes=i)
            )
            for i in range(count)
        ]
        db_session.add_all(communities)
        await db_session.commit()
        return communities

    async def _walk_forward(self, db_session, limit: int):
        seen, cursor = [], None
        while True:
            page = await paginate_cursor(
                db_session,
                select(Community),
                Community,
                CursorParams(cursor=cursor, limit=limit),
            )
            seen.extend(c.id for c in page.data)
            if not page.has_more:
                return seen
            cursor = page.next_cursor

    async def test_forward_walk_visits_every_row_once(self, db_session):
        communities = await self._seed(db_session, 7)

        seen = await self._walk_forward(db_session, limit=3)

        assert seen == [c.id for c in communities]

    async def test_ties_on_sort_value_break_by_id(self, db_session):
        communities = await self._seed(db_session, 5, same_time=True)

        seen = await self._walk_forward(db_session, limit=2)

        assert len(seen) == 5
        assert sorted(seen) == sorted(c.id for c in communities)
        assert seen == sorted(seen)

    async def test_backward_from_next_page_returns_previous_page(self, db_session):
        await self._seed(db_session, 6)
        first = await paginate_cursor(
            db_session, select(Community), Community, CursorParams(limit=3)
        )
        second = await paginate_cursor(
            db_session,
            select(Community),
            Community,
            CursorParams(cursor=first.next_cursor, limit=3),
        )

        back = await paginate_cursor(
            db_session,
            select(Community),
            Community,
            CursorParams(cursor=cursor_for(second.data[0]), limit=3, direction="backward"),
        )

        assert [c.id for c in back.data] == [c.id for c in first.data]

    async def test_malformed_cursor_is_rejected(self, db_session):
        with pytest.raises(InvalidCursorError):
            await paginate_cursor(
                db_session,
                select(Community),
                Community,
                CursorParams(cursor="%%%", limit=3),
            )


class TestOffsetPagination:
    def test_offset_from_page(self):
        assert PageParams(page=3, limit=10).offset == 20

    def test_total_pages(self):
        info = PaginationInfo.build(PageParams(page=1, limit=10), total=21)
        assert info.total_pages == 3

    def test_empty_total(self):
        info = PaginationInfo.build(PageParams(page=1, limit=10), total=0)
        assert info.total_pages == 0
