"""Tests for NotificationSweeper."""

import asyncio
import json
from collections import Counter
from datetime import UTC, date, datetime, time, timedelta
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from roster_sync.db.turso import TursoClient
from roster_sync.identity.schemas import Identity
from roster_sync.notifications.channels import (
    DeliveryError,
    EmailChannel,
    PushChannel,
)
from roster_sync.notifications.copy_generator import NotificationCopyGenerator
from roster_sync.notifications.schemas import NotificationCopy
from roster_sync.notifications.sweeper import NotificationSweeper
from roster_sync.repositories.change_repo import ShiftChangeRepository
from roster_sync.repositories.identity_repo import IdentityRepository, Recipient
from roster_sync.repositories.notification_log_repo import NotificationLogRepository
from roster_sync.repositories.roster_repo import RosterRepository
from roster_sync.roster.differ import diff_versions
from roster_sync.roster.schemas import ResolvedShift, RosterVersion, ShiftChange
from roster_sync.services.llm_client import LLMClientError

MONDAY = date(2024, 1, 1)
LONG_AGO = datetime(2000, 1, 1, tzinfo=UTC)


class RecordingChannel:
    """Delivery channel that records sends and can fail for chosen users."""

    def __init__(self, name: str = "push", fail_for: tuple[str, ...] = ()):
        self.name = name
        self.fail_for = set(fail_for)
        self.sent: list[tuple[str, str, str]] = []

    async def send(self, recipient: Recipient, title: str, body: str) -> int:
        await asyncio.sleep(0)
        if recipient.user_id in self.fail_for:
            raise DeliveryError(f"{self.name} unreachable")
        self.sent.append((recipient.user_id, title, body))
        return 1


@pytest.fixture
async def repos(db_client: TursoClient):
    """Initialized repositories with three users.

    u-ana and u-ben have push enabled; u-cat has no enabled channel.
    """
    identity_repo = IdentityRepository(db_client)
    await identity_repo.initialize()
    roster_repo = RosterRepository(db_client)
    await roster_repo.initialize()
    log_repo = NotificationLogRepository(db_client)
    await log_repo.initialize()

    await identity_repo.upsert_identity(
        Identity(id="u-ana", display_name="Ana"), push_enabled=True
    )
    await identity_repo.upsert_identity(
        Identity(id="u-ben", display_name="Ben"), push_enabled=True, email_enabled=True
    )
    await identity_repo.upsert_identity(Identity(id="u-cat", display_name="Cat"))

    return {
        "identity": identity_repo,
        "roster": roster_repo,
        "change": ShiftChangeRepository(db_client),
        "log": log_repo,
    }


@pytest.fixture
def mock_copy_generator() -> MagicMock:
    """Copy generator returning fixed copy."""
    generator = MagicMock(spec=NotificationCopyGenerator)
    generator.generate = AsyncMock(
        return_value=NotificationCopy(title="New shift added", body="Mon 9am-5pm")
    )
    return generator


@pytest.fixture
def push() -> RecordingChannel:
    """Push channel that always succeeds."""
    return RecordingChannel()


def make_sweeper(repos, copy_generator, channels) -> NotificationSweeper:
    return NotificationSweeper(
        change_repo=repos["change"],
        roster_repo=repos["roster"],
        identity_repo=repos["identity"],
        copy_generator=copy_generator,
        channels=channels,
        log_repo=repos["log"],
        window=timedelta(minutes=10),
    )


async def seed_changes(roster_repo: RosterRepository, users: list[str]):
    """Commit a first roster version giving each listed user one new shift."""
    version = RosterVersion(venue_id="venue-1", week_start_date=MONDAY, version_number=1)
    version.shifts = [
        ResolvedShift(
            roster_version_id=version.id,
            identity_id=user_id,
            employee_name=user_id,
            role="Floor",
            date=MONDAY + timedelta(days=i),
            start_time=time(9),
            end_time=time(17),
        )
        for i, user_id in enumerate(users)
    ]
    changes: list[ShiftChange] = diff_versions(None, version).changes
    await roster_repo.commit_version(version, changes)
    return changes


class TestSweep:
    """Dispatch behaviour of a single sweep."""

    @pytest.mark.asyncio
    async def test_notifies_each_user_once(self, repos, mock_copy_generator, push):
        """Each user gets one notification covering all their changes."""
        changes = await seed_changes(repos["roster"], ["u-ana", "u-ana", "u-ben"])
        sweeper = make_sweeper(repos, mock_copy_generator, [push])

        result = await sweeper.sweep()

        assert result.claimed == 3
        assert result.processed == 3
        assert result.failed_users == []
        assert sorted(user for user, _, _ in push.sent) == ["u-ana", "u-ben"]

        ana = next(p for p in result.payloads if p.user_id == "u-ana")
        assert ana.user_name == "Ana"
        assert sorted(ana.change_ids) == sorted(c.id for c in changes[:2])
        assert sorted(s.date for s in ana.new_shifts) == ["2024-01-01", "2024-01-02"]
        assert ana.old_shifts == []
        assert ana.title == "New shift added"
        assert ana.channels == ["push"]

        assert await repos["change"].list_pending(LONG_AGO) == []
        log = await repos["log"].list_for_user("u-ana")
        assert [e["delivery_status"] for e in log] == ["sent"]

    @pytest.mark.asyncio
    async def test_second_sweep_finds_nothing(self, repos, mock_copy_generator, push):
        """Claimed changes are never notified again."""
        await seed_changes(repos["roster"], ["u-ana"])
        sweeper = make_sweeper(repos, mock_copy_generator, [push])

        await sweeper.sweep()
        again = await sweeper.sweep()

        assert again.processed == 0
        assert len(push.sent) == 1

    @pytest.mark.asyncio
    async def test_changes_outside_window_are_ignored(
        self, repos, mock_copy_generator, push
    ):
        """Only changes from the last window are swept."""
        await seed_changes(repos["roster"], ["u-ana"])
        sweeper = make_sweeper(repos, mock_copy_generator, [push])

        result = await sweeper.sweep(now=datetime.now(UTC) + timedelta(hours=1))

        assert result.processed == 0
        assert push.sent == []

    @pytest.mark.asyncio
    async def test_user_without_channel_is_claimed_not_sent(
        self, repos, mock_copy_generator, push
    ):
        """No enabled channel: claims are kept and nothing is dispatched."""
        await seed_changes(repos["roster"], ["u-cat"])
        sweeper = make_sweeper(repos, mock_copy_generator, [push])

        result = await sweeper.sweep()

        assert result.processed == 1
        assert result.skipped_no_channel == 1
        assert result.payloads == []
        assert push.sent == []
        mock_copy_generator.generate.assert_not_awaited()
        assert await repos["change"].list_pending(LONG_AGO) == []
        log = await repos["log"].list_for_user("u-cat")
        assert [e["delivery_status"] for e in log] == ["skipped"]

    @pytest.mark.asyncio
    async def test_unknown_user_is_skipped(self, repos, mock_copy_generator, push):
        """Changes for users missing from the catalogue are claimed and skipped."""
        await seed_changes(repos["roster"], ["u-gone"])
        sweeper = make_sweeper(repos, mock_copy_generator, [push])

        result = await sweeper.sweep()

        assert result.skipped_no_channel == 1
        assert push.sent == []


class TestFailureIsolation:
    """A failing user does not affect other users."""

    @pytest.mark.asyncio
    async def test_delivery_failure_releases_only_that_user(
        self, repos, mock_copy_generator
    ):
        """The failing user's changes go back to pending; others are sent."""
        await seed_changes(repos["roster"], ["u-ana", "u-ben"])
        push = RecordingChannel(fail_for=("u-ana",))
        sweeper = make_sweeper(repos, mock_copy_generator, [push])

        result = await sweeper.sweep()

        assert result.failed_users == ["u-ana"]
        assert result.processed == 1
        assert [user for user, _, _ in push.sent] == ["u-ben"]
        pending = await repos["change"].list_pending(LONG_AGO)
        assert [c.user_id for c in pending] == ["u-ana"]

    @pytest.mark.asyncio
    async def test_released_user_is_retried_next_sweep(
        self, repos, mock_copy_generator
    ):
        """After a failure, the next sweep delivers the user's changes."""
        await seed_changes(repos["roster"], ["u-ana"])
        push = RecordingChannel(fail_for=("u-ana",))
        sweeper = make_sweeper(repos, mock_copy_generator, [push])

        await sweeper.sweep()
        push.fail_for.clear()
        result = await sweeper.sweep()

        assert result.processed == 1
        assert [user for user, _, _ in push.sent] == ["u-ana"]

    @pytest.mark.asyncio
    async def test_copy_generation_failure_releases_claims(
        self, repos, mock_copy_generator, push
    ):
        """LLM request failures count as a per-user failure."""
        await seed_changes(repos["roster"], ["u-ana"])
        mock_copy_generator.generate.side_effect = LLMClientError("timeout")
        sweeper = make_sweeper(repos, mock_copy_generator, [push])

        result = await sweeper.sweep()

        assert result.failed_users == ["u-ana"]
        assert len(await repos["change"].list_pending(LONG_AGO)) == 1

    @pytest.mark.asyncio
    async def test_partial_delivery_keeps_claims(self, repos, mock_copy_generator):
        """If any enabled channel delivers, the changes stay claimed."""
        await seed_changes(repos["roster"], ["u-ben"])
        push = RecordingChannel("push")
        email = RecordingChannel("email", fail_for=("u-ben",))
        sweeper = make_sweeper(repos, mock_copy_generator, [push, email])

        result = await sweeper.sweep()

        assert result.failed_users == []
        assert result.payloads[0].channels == ["push"]
        assert await repos["change"].list_pending(LONG_AGO) == []


class TestConcurrentSweeps:
    """Claim discipline across overlapping sweeps."""

    @pytest.mark.asyncio
    async def test_concurrent_sweeps_never_duplicate_a_change(
        self, repos, mock_copy_generator, push
    ):
        """Each change is processed by exactly one of two sweeps."""
        changes = await seed_changes(
            repos["roster"], ["u-ana", "u-ana", "u-ben", "u-ben"]
        )
        first = make_sweeper(repos, mock_copy_generator, [push])
        second = make_sweeper(repos, mock_copy_generator, [push])

        results = await asyncio.gather(first.sweep(), second.sweep())

        assert sum(r.processed for r in results) == len(changes)
        notified = Counter(
            change_id
            for result in results
            for payload in result.payloads
            for change_id in payload.change_ids
        )
        assert set(notified) == {c.id for c in changes}
        assert all(count == 1 for count in notified.values())


def fcm_push(accepting: set[str], pushes: Counter) -> PushChannel:
    """Real PushChannel over a fake FCM that accepts only some tokens."""

    def handler(request: httpx.Request) -> httpx.Response:
        token = json.loads(request.content)["to"]
        pushes[token] += 1
        if token in accepting:
            return httpx.Response(200, json={"success": 1})
        return httpx.Response(500, text="unavailable")

    return PushChannel(
        server_key="server-key",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


class TestDeliveredMeansClaimed:
    """Once anything reached the user, the changes are never sent again."""

    @pytest.mark.asyncio
    async def test_partially_rejected_devices_are_not_pushed_twice(
        self, repos, mock_copy_generator
    ):
        """One failing device does not release the claims."""
        await repos["identity"].add_device_token("u-ana", "ios", "tok-a")
        await repos["identity"].add_device_token("u-ana", "android", "tok-b")
        await seed_changes(repos["roster"], ["u-ana"])
        pushes: Counter = Counter()
        sweeper = make_sweeper(
            repos, mock_copy_generator, [fcm_push({"tok-a"}, pushes)]
        )

        first = await sweeper.sweep()
        await sweeper.sweep()

        assert first.failed_users == []
        assert pushes["tok-a"] == 1
        assert await repos["change"].list_pending(LONG_AGO) == []

    @pytest.mark.asyncio
    async def test_failed_log_write_keeps_claims(
        self, repos, mock_copy_generator, push, monkeypatch
    ):
        """An audit write failure after delivery does not trigger a resend."""
        await seed_changes(repos["roster"], ["u-ana"])
        record = repos["log"].record
        failures = [RuntimeError("log table locked")]

        async def flaky_record(**kwargs):
            if failures:
                raise failures.pop()
            await record(**kwargs)

        monkeypatch.setattr(repos["log"], "record", flaky_record)
        sweeper = make_sweeper(repos, mock_copy_generator, [push])

        first = await sweeper.sweep()
        second = await sweeper.sweep()

        assert first.failed_users == []
        assert first.processed == 1
        assert second.processed == 0
        assert [user for user, _, _ in push.sent] == ["u-ana"]

    @pytest.mark.asyncio
    async def test_push_user_without_devices_is_logged_skipped(
        self, repos, mock_copy_generator
    ):
        """A channel that reached nobody is not recorded as sent."""
        await seed_changes(repos["roster"], ["u-ana"])
        pushes: Counter = Counter()
        sweeper = make_sweeper(repos, mock_copy_generator, [fcm_push(set(), pushes)])

        result = await sweeper.sweep()

        assert result.skipped_no_channel == 1
        assert result.payloads == []
        assert pushes == Counter()
        log = await repos["log"].list_for_user("u-ana")
        assert [e["delivery_status"] for e in log] == ["skipped"]
        assert await repos["change"].list_pending(LONG_AGO) == []


class TestEmailDelivery:
    """Email opt-ins are delivered through the email channel."""

    @pytest.mark.asyncio
    async def test_email_only_user_is_emailed(self, repos, mock_copy_generator, push):
        """Users with only email enabled receive an email."""
        await repos["identity"].upsert_identity(
            Identity(id="u-dee", display_name="Dee"),
            email="dee@example.com",
            email_enabled=True,
        )
        await seed_changes(repos["roster"], ["u-dee"])
        emails: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            emails.append(json.loads(request.content))
            return httpx.Response(200, json={"id": "msg-1"})

        email = EmailChannel(
            api_key="email-key",
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
            send_url="https://mail.example.com/emails",
        )
        sweeper = make_sweeper(repos, mock_copy_generator, [push, email])

        result = await sweeper.sweep()

        assert result.payloads[0].channels == ["email"]
        assert push.sent == []
        assert [e["to"] for e in emails] == [["dee@example.com"]]
        assert emails[0]["subject"] == "New shift added"
