"""
Integration tests for the report store in coastwatch.db.queries.

Tests creation, lookup, paginated listing and the verification
compare-and-swap, including two reviewers racing on one report.
"""

import asyncio
import uuid
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import func, select

pytestmark = pytest.mark.asyncio(loop_scope="session")

from coastwatch.db.models import HazardType, Report, ReportStatus, Severity, UserRole
from coastwatch.db.queries import (
    create_report,
    get_report_by_id,
    list_reports_paginated,
    transition_report_verification,
)
from coastwatch.exceptions import InvalidStateError, NotFoundError, ValidationError
from coastwatch.services.verification import VerificationOutcome


async def _count_reports(session) -> int:
    return (await session.execute(select(func.count(Report.id)))).scalar_one()


# =============================================================================
# TestCreateReport
# =============================================================================


class TestCreateReport:
    """Tests for create_report()."""

    async def test_creates_pending_report(self, db_session, users, valid_draft):
        reporter = users[UserRole.citizen]

        report = await create_report(db_session, valid_draft, reporter_id=reporter.id)
        await db_session.commit()

        stored = await get_report_by_id(db_session, report.id)
        assert stored.status == ReportStatus.pending
        assert stored.reporter_id == reporter.id
        assert stored.hazard_type == HazardType.high_waves
        assert stored.severity == Severity.high
        assert stored.longitude == pytest.approx(80.2707)
        assert stored.latitude == pytest.approx(13.0827)
        assert stored.verifier_id is None
        assert stored.verified_at is None
        assert stored.rejection_reason is None

    async def test_timestamps_are_utc(self, db_session, users, valid_draft):
        report = await create_report(
            db_session, valid_draft, reporter_id=users[UserRole.citizen].id
        )
        await db_session.commit()

        stored = await get_report_by_id(db_session, report.id)
        assert stored.created_at.tzinfo is not None
        assert stored.created_at.utcoffset() == timedelta(0)
        assert stored.updated_at >= stored.created_at

    async def test_media_reference_stored_verbatim(self, db_session, users, valid_draft):
        valid_draft["mediaReference"] = "s3://bucket/reports/IMG_0042.jpg?v=2"
        report = await create_report(
            db_session, valid_draft, reporter_id=users[UserRole.citizen].id
        )
        assert report.media_reference == "s3://bucket/reports/IMG_0042.jpg?v=2"

    async def test_invalid_draft_writes_nothing(self, db_session, users, valid_draft):
        valid_draft["severity"] = "catastrophic"

        with pytest.raises(ValidationError):
            await create_report(
                db_session, valid_draft, reporter_id=users[UserRole.citizen].id
            )

        await db_session.rollback()
        assert await _count_reports(db_session) == 0


# =============================================================================
# TestGetReport
# =============================================================================


class TestGetReport:
    """Tests for get_report_by_id()."""

    async def test_found(self, db_session, seed_report):
        report = await seed_report()
        assert (await get_report_by_id(db_session, report.id)).id == report.id

    async def test_missing(self, db_session, users):
        assert await get_report_by_id(db_session, uuid.uuid4()) is None


# =============================================================================
# TestListReports
# =============================================================================


class TestListReports:
    """Tests for list_reports_paginated()."""

    async def test_newest_first_by_default(self, db_session, seed_report):
        base = datetime(2024, 5, 1, tzinfo=UTC)
        older = await seed_report(created_at=base)
        newer = await seed_report(created_at=base + timedelta(hours=1))

        reports, total = await list_reports_paginated(db_session)

        assert total == 2
        assert [r.id for r in reports] == [newer.id, older.id]

    async def test_filters_combine(self, db_session, seed_report):
        await seed_report(hazard_type=HazardType.flood, status=ReportStatus.pending)
        match = await seed_report(
            hazard_type=HazardType.flood, status=ReportStatus.verified
        )
        await seed_report(hazard_type=HazardType.tsunami, status=ReportStatus.verified)

        reports, total = await list_reports_paginated(
            db_session,
            status=ReportStatus.verified,
            hazard_type=HazardType.flood,
        )

        assert total == 1
        assert reports[0].id == match.id

    async def test_pagination(self, db_session, seed_report):
        base = datetime(2024, 5, 1, tzinfo=UTC)
        seeded = [await seed_report(created_at=base + timedelta(minutes=i)) for i in range(5)]

        page2, total = await list_reports_paginated(
            db_session, sort_by="createdAt", order="asc", page=2, limit=2
        )

        assert total == 5
        assert [r.id for r in page2] == [seeded[2].id, seeded[3].id]

    async def test_page_past_end_is_empty(self, db_session, seed_report):
        await seed_report()
        reports, total = await list_reports_paginated(db_session, page=3, limit=10)
        assert reports == []
        assert total == 1

    async def test_sort_by_snake_case_name(self, db_session, seed_report):
        await seed_report(severity=Severity.low)
        reports, _ = await list_reports_paginated(db_session, sort_by="hazard_type")
        assert len(reports) == 1

    async def test_ties_broken_by_id(self, db_session, seed_report):
        moment = datetime(2024, 5, 1, tzinfo=UTC)
        seeded = [await seed_report(created_at=moment) for _ in range(4)]

        reports, _ = await list_reports_paginated(db_session, order="asc")

        assert [r.id for r in reports] == sorted(r.id for r in seeded)

    async def test_limit_is_clamped(self, db_session, seed_report):
        for _ in range(3):
            await seed_report()
        reports, total = await list_reports_paginated(db_session, limit=10_000, max_limit=2)
        assert len(reports) == 2
        assert total == 3

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"sort_by": "password"},
            {"order": "sideways"},
            {"page": 0},
            {"limit": 0},
        ],
    )
    async def test_rejects_bad_parameters(self, db_session, users, kwargs):
        with pytest.raises(ValidationError):
            await list_reports_paginated(db_session, **kwargs)


# =============================================================================
# TestTransition
# =============================================================================


class TestTransition:
    """Tests for transition_report_verification()."""

    async def test_verify(self, db_session, users, seed_report):
        report = await seed_report()
        verifier = users[UserRole.verifier]
        stamp = datetime(2024, 6, 1, 9, 30, tzinfo=UTC)

        updated = await transition_report_verification(
            db_session,
            report.id,
            verifier_id=verifier.id,
            outcome=VerificationOutcome.verified,
            now=stamp,
        )
        await db_session.commit()

        assert updated.status == ReportStatus.verified
        assert updated.verifier_id == verifier.id
        assert updated.verified_at == stamp
        assert updated.updated_at == stamp
        assert updated.rejection_reason is None

    async def test_reject_with_reason(self, db_session, users, seed_report):
        report = await seed_report()

        updated = await transition_report_verification(
            db_session,
            report.id,
            verifier_id=users[UserRole.analyst].id,
            outcome=VerificationOutcome.rejected,
            reason="Photo shows a different beach",
        )

        assert updated.status == ReportStatus.rejected
        assert updated.rejection_reason == "Photo shows a different beach"
        assert updated.verifier_id == users[UserRole.analyst].id

    async def test_reason_ignored_when_verifying(self, db_session, users, seed_report):
        report = await seed_report()
        updated = await transition_report_verification(
            db_session,
            report.id,
            verifier_id=users[UserRole.verifier].id,
            outcome=VerificationOutcome.verified,
            reason="should not be stored",
        )
        assert updated.rejection_reason is None

    async def test_location_and_reporter_unchanged(self, db_session, users, seed_report):
        report = await seed_report(longitude=-122.41, latitude=37.77)
        reporter_id = report.reporter_id

        updated = await transition_report_verification(
            db_session,
            report.id,
            verifier_id=users[UserRole.verifier].id,
            outcome=VerificationOutcome.verified,
        )

        assert (updated.longitude, updated.latitude) == (-122.41, 37.77)
        assert updated.reporter_id == reporter_id

    @pytest.mark.parametrize("status", [ReportStatus.verified, ReportStatus.rejected])
    @pytest.mark.parametrize("outcome", list(VerificationOutcome))
    async def test_terminal_report_rejected(
        self, db_session, users, seed_report, status, outcome
    ):
        report = await seed_report(status=status)
        report_id = report.id
        verifier_id = users[UserRole.verifier].id

        with pytest.raises(InvalidStateError) as exc_info:
            await transition_report_verification(
                db_session,
                report_id,
                verifier_id=users[UserRole.admin].id,
                outcome=outcome,
            )

        assert exc_info.value.current_status == status.value
        await db_session.rollback()
        stored = await get_report_by_id(db_session, report_id)
        assert stored.status == status
        assert stored.verifier_id == verifier_id

    async def test_missing_report(self, db_session, users):
        with pytest.raises(NotFoundError):
            await transition_report_verification(
                db_session,
                uuid.uuid4(),
                verifier_id=users[UserRole.verifier].id,
                outcome=VerificationOutcome.verified,
            )


# =============================================================================
# TestConcurrentVerification
# =============================================================================


class TestConcurrentVerification:
    """Two reviewers acting on the same pending report at once."""

    async def _attempt(self, session_factory, report_id, verifier_id, outcome):
        async with session_factory() as session:
            try:
                report = await transition_report_verification(
                    session,
                    report_id,
                    verifier_id=verifier_id,
                    outcome=outcome,
                )
                await session.commit()
                return report.status
            except InvalidStateError as e:
                await session.rollback()
                return e

    async def test_exactly_one_wins(self, session_factory, users, seed_report):
        report = await seed_report()

        results = await asyncio.gather(
            self._attempt(
                session_factory,
                report.id,
                users[UserRole.verifier].id,
                VerificationOutcome.verified,
            ),
            self._attempt(
                session_factory,
                report.id,
                users[UserRole.analyst].id,
                VerificationOutcome.rejected,
            ),
        )

        wins = [r for r in results if isinstance(r, ReportStatus)]
        losses = [r for r in results if isinstance(r, InvalidStateError)]
        assert len(wins) == 1
        assert len(losses) == 1

        async with session_factory() as session:
            stored = await get_report_by_id(session, report.id)
        assert stored.status == wins[0]
        assert losses[0].current_status == wins[0].value

    async def test_different_reports_do_not_contend(
        self, session_factory, users, seed_report
    ):
        first = await seed_report()
        second = await seed_report()

        results = await asyncio.gather(
            self._attempt(
                session_factory,
                first.id,
                users[UserRole.verifier].id,
                VerificationOutcome.verified,
            ),
            self._attempt(
                session_factory,
                second.id,
                users[UserRole.analyst].id,
                VerificationOutcome.verified,
            ),
        )

        assert results == [ReportStatus.verified, ReportStatus.verified]
