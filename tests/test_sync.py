import pytest

from codetrack.models import ProblemRecord
from codetrack.storage import MemoryStorage
from codetrack.sync import SyncService, SyncValidationError
from tests.helpers import FakeClient, make_profile, solved


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def clients():
    leetcode = FakeClient("leetcode", profiles={
        "validuser": make_profile(120, 60, 50, 10, recent=[
            solved("Two Sum"),
            solved("Valid Parentheses"),
            solved("Two Sum"),
            solved("Add Two Numbers", status="Wrong Answer"),
        ]),
    })
    gfg = FakeClient("gfg", profiles={
        "jane": make_profile(75, 30, 40, 5, recent=[solved("Kadane's Algorithm", status="solved")]),
    })
    tuf = FakeClient("tuf", profiles={"jane": make_profile(37, 13, 20, 4)})
    return {"leetcode": leetcode, "gfg": gfg, "tuf": tuf}


@pytest.fixture
def service(storage, clients):
    return SyncService(storage, clients)


def test_sync_stores_new_solved_items_and_aggregate(service, storage):
    report = service.sync_user_data("u1", {"leetcode": "validuser"})

    assert report.success is True
    assert report.errors == []
    assert len(report.synced) == 1
    assert report.synced[0].platform == "leetcode"
    assert report.synced[0].problems_added == 2
    assert report.synced[0].total_solved == 120
    assert report.message == "Sync complete. Added 2 new problems to list."

    records = storage.get_user_records("u1")
    assert sorted(r.name for r in records) == ["Two Sum", "Valid Parentheses"]
    two_sum = next(r for r in records if r.name == "Two Sum")
    assert two_sum.url == "https://leetcode.com/problems/two-sum/"
    assert two_sum.difficulty is None
    assert two_sum.solved_at == "2024-05-01T10:00:00+00:00"

    aggregates = storage.get_aggregates("u1")
    assert [(a.platform, a.total_solved, a.easy_solved, a.medium_solved, a.hard_solved) for a in aggregates] == [
        ("leetcode", 120, 60, 50, 10)
    ]


def test_sync_is_idempotent(service, storage):
    service.sync_user_data("u1", {"leetcode": "validuser", "gfg": "jane"})
    before = [a.to_dict() for a in storage.get_aggregates("u1")]

    second = service.sync_user_data("u1", {"leetcode": "validuser", "gfg": "jane"})

    assert second.success is True
    assert [item.problems_added for item in second.synced] == [0, 0]
    assert second.message == "Sync complete. Added 0 new problems to list."
    after = [a.to_dict() for a in storage.get_aggregates("u1")]
    strip = lambda rows: [{k: v for k, v in row.items() if k != "last_updated"} for row in rows]
    assert strip(before) == strip(after)
    assert len(storage.get_user_records("u1")) == 3


def test_sync_dedups_against_existing_records_case_insensitively(service, storage):
    storage.create_record("u1", ProblemRecord(name="  two sum ", platform="leetcode", difficulty="easy"))
    # Same title on another platform is a different problem.
    storage.create_record("u1", ProblemRecord(name="Valid Parentheses", platform="gfg"))

    report = service.sync_user_data("u1", {"leetcode": "validuser"})

    assert report.synced[0].problems_added == 1
    keys = [r.dedup_key for r in storage.get_user_records("u1")]
    assert len(keys) == len(set(keys))
    assert ("leetcode", "valid parentheses") in keys


def test_gfg_items_keep_client_url(storage):
    item = solved("Kadane's Algorithm", status="solved")
    item.url = "https://www.geeksforgeeks.org/problems/kadanes-algorithm/1"
    gfg = FakeClient("gfg", profiles={"jane": make_profile(5, 5, 0, 0, recent=[item])})

    SyncService(storage, {"gfg": gfg}).sync_user_data("u1", {"gfg": "jane"})

    record = storage.get_user_records("u1")[0]
    assert record.url == "https://www.geeksforgeeks.org/problems/kadanes-algorithm/1"


def test_partial_failure_reports_only_the_failed_platform(service, storage):
    report = service.sync_user_data("u1", {"leetcode": "validuser", "gfg": "ghost-user-404"})

    assert report.success is True
    assert [item.platform for item in report.synced] == ["leetcode"]
    assert len(report.errors) == 1
    assert "gfg" in report.errors[0]
    assert "ghost-user-404" in report.errors[0]
    assert [a.platform for a in storage.get_aggregates("u1")] == ["leetcode"]


def test_transient_failure_and_raising_client_do_not_abort_others(storage):
    clients = {
        "leetcode": FakeClient("leetcode", failures={"validuser": "request failed (HTTP 503)"}),
        "gfg": FakeClient("gfg", raises=RuntimeError("browser crashed")),
        "tuf": FakeClient("tuf", profiles={"jane": make_profile(37, 13, 20, 4)}),
    }
    report = SyncService(storage, clients).sync_user_data(
        "u1", {"leetcode": "validuser", "gfg": "jane", "tuf": "jane"}
    )

    assert report.success is True
    assert [item.platform for item in report.synced] == ["tuf"]
    assert report.errors == [
        "leetcode: request failed (HTTP 503)",
        "gfg: sync failed (browser crashed)",
    ]


def test_all_platforms_failing_is_unsuccessful(service):
    report = service.sync_user_data("u1", {"leetcode": "nobody", "gfg": "nobody"})
    assert report.success is False
    assert report.synced == []
    assert len(report.errors) == 2


def test_report_to_dict_shape(service):
    payload = service.sync_user_data("u1", {"tuf": "jane"}).to_dict()
    assert set(payload) == {"success", "message", "synced", "errors"}
    assert payload["synced"] == [{"platform": "tuf", "problems_added": 0, "total_solved": 37}]


def test_aggregate_overwritten_wholesale(storage):
    tuf = FakeClient("tuf", profiles={"a": make_profile(37, 13, 20, 4), "b": make_profile(5, 5, 0, 0)})
    service = SyncService(storage, {"tuf": tuf})
    service.sync_user_data("u1", {"tuf": "a"})
    service.sync_user_data("u1", {"tuf": "b"})

    aggregate = storage.get_aggregates("u1")[0]
    assert (aggregate.total_solved, aggregate.easy_solved, aggregate.medium_solved, aggregate.hard_solved) == (5, 5, 0, 0)


@pytest.mark.parametrize("handles", [
    {},
    {"leetcode": "   ", "gfg": ""},
    {"codeforces": "tourist"},
    None,
    ["leetcode"],
])
def test_validation_rejects_before_any_client_call(service, clients, handles):
    with pytest.raises(SyncValidationError):
        service.sync_user_data("u1", handles)
    assert all(client.calls == [] for client in clients.values())


def test_blank_handles_are_dropped(service, clients):
    report = service.sync_user_data("u1", {"leetcode": "validuser", "gfg": "  "})
    assert [item.platform for item in report.synced] == ["leetcode"]
    assert clients["gfg"].calls == []


def test_missing_client_is_validation_error(storage):
    service = SyncService(storage, {"leetcode": FakeClient("leetcode")})
    with pytest.raises(SyncValidationError):
        service.sync_user_data("u1", {"tuf": "jane"})


def test_record_save_failure_is_skipped(storage, clients, monkeypatch):
    real_create = storage.create_record

    def flaky_create(user_id, record):
        if record.name == "Two Sum":
            raise RuntimeError("disk full")
        return real_create(user_id, record)

    monkeypatch.setattr(storage, "create_record", flaky_create)
    report = SyncService(storage, clients).sync_user_data("u1", {"leetcode": "validuser"})

    assert report.synced[0].problems_added == 1
    assert [r.name for r in storage.get_user_records("u1")] == ["Valid Parentheses"]


def test_aggregate_save_failure_is_platform_error(storage, clients, monkeypatch):
    def broken_upsert(user_id, aggregate):
        raise RuntimeError("locked")

    monkeypatch.setattr(storage, "upsert_aggregate", broken_upsert)
    report = SyncService(storage, clients).sync_user_data("u1", {"tuf": "jane"})

    assert report.success is False
    assert report.errors == ["tuf: failed to save stats (locked)"]


def test_sync_saved_credentials_marks_last_sync(service, storage):
    storage.save_credential("u1", "leetcode", "validuser")
    storage.save_credential("u1", "gfg", "ghost-user-404")

    report = service.sync_saved_credentials("u1")

    assert [item.platform for item in report.synced] == ["leetcode"]
    by_platform = {c.platform: c for c in storage.get_credentials("u1")}
    assert by_platform["leetcode"].last_sync_at is not None
    assert by_platform["gfg"].last_sync_at is None


def test_sync_saved_credentials_without_handles(service):
    with pytest.raises(SyncValidationError):
        service.sync_saved_credentials("nobody")
