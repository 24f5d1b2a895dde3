from datetime import UTC, datetime

from conftest import FailingStore, make_day, make_reading

from gas_monitor.models import MonthlyAggregateModel, Tier
from gas_monitor.rollover import RolloverManager, SaveOutcome, upsert
from gas_monitor.tiers import TierRepository


def test_stale_readings_become_one_daily_aggregate(repo, clock) -> None:
    repo.save(
        Tier.TODAY,
        [
            make_reading("2025-03-14T08:00:00.000Z", etanol=10),
            make_reading("2025-03-14T12:00:00.000Z", etanol=20),
            make_reading("2025-03-14T18:00:00.000Z", etanol=30),
            make_reading("2025-03-15T09:00:00.000Z", etanol=5),
        ],
    )

    report = RolloverManager(repo, clock).run()

    assert report.readings_archived == 3
    assert report.daily_keys == ["2025-03-14"]
    assert report.messages == ["Archived 3 entries from previous days"]
    readings = repo.load_readings()
    assert [r.dateTime for r in readings] == ["2025-03-15T09:00:00.000Z"]
    history = repo.load_history()
    assert len(history) == 1
    assert history[0].date == "2025-03-14"
    assert history[0].etanol == 20


def test_stale_readings_are_grouped_per_day(repo, clock) -> None:
    repo.save(
        Tier.TODAY,
        [
            make_reading("2025-03-13T08:00:00.000Z", co=2),
            make_reading("2025-03-14T08:00:00.000Z", co=4),
        ],
    )

    RolloverManager(repo, clock).run()

    history = {d.date: d for d in repo.load_history()}
    assert set(history) == {"2025-03-13", "2025-03-14"}
    assert history["2025-03-13"].co == 2
    assert history["2025-03-14"].co == 4
    assert repo.load_readings() == []


def test_rollover_is_idempotent(repo, store, clock) -> None:
    repo.save(Tier.TODAY, [make_reading("2025-03-14T08:00:00.000Z"), make_reading("2025-03-15T08:00:00.000Z")])
    manager = RolloverManager(repo, clock)
    manager.run()
    snapshot = {tier: store.get(tier.value) for tier in Tier}

    report = manager.run()

    assert not report.rolled
    assert report.messages == []
    assert {tier: store.get(tier.value) for tier in Tier} == snapshot


def test_nothing_stale_writes_nothing(store, clock) -> None:
    repo = TierRepository(store)
    repo.save(Tier.TODAY, [make_reading("2025-03-15T08:00:00.000Z")])
    repo.save(Tier.HISTORY, [make_day("2025-03-10")])

    report = RolloverManager(repo, clock).run()

    assert not report.rolled
    assert store.get(Tier.MONTHLY.value) is None


def test_previous_month_history_becomes_monthly_aggregate(repo, clock) -> None:
    repo.save(
        Tier.HISTORY,
        [
            make_day("2025-02-01", co2=400),
            make_day("2025-02-02", co2=500),
            make_day("2025-03-01", co2=450),
        ],
    )

    report = RolloverManager(repo, clock).run()

    assert report.days_archived == 2
    assert report.monthly_keys == ["2025-02"]
    assert [d.date for d in repo.load_history()] == ["2025-03-01"]
    monthly = repo.load_monthly()
    assert len(monthly) == 1
    assert monthly[0].month == "2025-02"
    assert monthly[0].co2 == 450
    assert monthly[0].dayCount == 2


def test_first_of_month_chains_daily_and_monthly_rollover(repo) -> None:
    now = datetime(2025, 3, 1, 0, 5, tzinfo=UTC)
    repo.save(
        Tier.TODAY,
        [
            make_reading("2025-02-28T22:00:00.000Z", nh3=4),
            make_reading("2025-02-28T23:00:00.000Z", nh3=6),
        ],
    )
    repo.save(Tier.HISTORY, [make_day("2025-02-27", nh3=2)])

    report = RolloverManager(repo, lambda: now).run()

    assert report.readings_archived == 2
    assert report.days_archived == 2
    assert repo.load_readings() == []
    assert repo.load_history() == []
    monthly = repo.load_monthly()
    assert [m.month for m in monthly] == ["2025-02"]
    # (2 + 5) / 2
    assert monthly[0].nh3 == 3.5
    assert monthly[0].dayCount == 2


def test_rollover_replaces_existing_aggregate_for_same_key(repo, clock) -> None:
    repo.save(Tier.HISTORY, [make_day("2025-03-14", co=99)])
    repo.save(Tier.TODAY, [make_reading("2025-03-14T10:00:00.000Z", co=1)])

    RolloverManager(repo, clock).run()

    history = repo.load_history()
    assert len(history) == 1
    assert history[0].co == 1


def test_upsert_replaces_in_place_or_appends() -> None:
    days = [make_day("2025-03-01", co=1), make_day("2025-03-02", co=2)]
    replaced = upsert(days, make_day("2025-03-01", co=7), "date")
    assert [(d.date, d.co) for d in replaced] == [("2025-03-01", 7), ("2025-03-02", 2)]
    appended = upsert(days, make_day("2025-03-03"), "date")
    assert [d.date for d in appended] == ["2025-03-01", "2025-03-02", "2025-03-03"]
    assert len(days) == 2


def test_failed_history_write_keeps_stale_readings(clock) -> None:
    store = FailingStore(fail_set={Tier.HISTORY.value})
    repo = TierRepository(store)
    repo.save(Tier.TODAY, [make_reading("2025-03-14T08:00:00.000Z"), make_reading("2025-03-15T08:00:00.000Z")])

    report = RolloverManager(repo, clock).run()

    assert not report.rolled
    assert len(repo.load_readings()) == 2


def test_failed_monthly_write_keeps_history(clock) -> None:
    store = FailingStore(fail_set={Tier.MONTHLY.value})
    repo = TierRepository(store)
    repo.save(Tier.HISTORY, [make_day("2025-02-10"), make_day("2025-03-10")])

    report = RolloverManager(repo, clock).run()

    assert report.days_archived == 0
    assert [d.date for d in repo.load_history()] == ["2025-02-10", "2025-03-10"]


def test_manual_daily_save_clears_today(repo, clock) -> None:
    repo.save(
        Tier.TODAY,
        [make_reading("2025-03-15T08:00:00.000Z", co2=400), make_reading("2025-03-15T09:00:00.000Z", co2=600)],
    )

    result = RolloverManager(repo, clock).save_daily_average()

    assert result.ok
    assert result.message == "Average saved to history and today's data cleared!"
    assert result.aggregate is not None
    assert result.aggregate.co2 == 500
    assert repo.load_readings() == []
    assert [d.date for d in repo.load_history()] == ["2025-03-15"]


def test_manual_daily_save_without_data(repo, store, clock) -> None:
    result = RolloverManager(repo, clock).save_daily_average()

    assert result.outcome == SaveOutcome.NO_DATA
    assert result.message == "No data available to save"
    assert store.get(Tier.HISTORY.value) is None


def test_manual_daily_save_keeps_data_when_store_fails(clock) -> None:
    store = FailingStore(fail_set={Tier.HISTORY.value})
    repo = TierRepository(store)
    repo.save(Tier.TODAY, [make_reading("2025-03-15T08:00:00.000Z")])

    result = RolloverManager(repo, clock).save_daily_average()

    assert result.outcome == SaveOutcome.STORAGE_UNAVAILABLE
    assert len(repo.load_readings()) == 1


def test_manual_monthly_save(repo, clock) -> None:
    repo.save(Tier.HISTORY, [make_day("2025-03-01", co=2), make_day("2025-03-02", co=4), make_day("2025-03-03", co=6)])
    repo.save(Tier.MONTHLY, [MonthlyAggregateModel(month="2025-01", co=1.0, dayCount=31)])

    result = RolloverManager(repo, clock).save_monthly_average()

    assert result.ok
    assert result.message == "Monthly average saved (3 days averaged) and this month's data cleared!"
    assert repo.load_history() == []
    monthly = {m.month: m for m in repo.load_monthly()}
    assert set(monthly) == {"2025-01", "2025-03"}
    assert monthly["2025-03"].co == 4


def test_manual_monthly_save_without_data(repo, clock) -> None:
    result = RolloverManager(repo, clock).save_monthly_average()
    assert result.outcome == SaveOutcome.NO_DATA
    assert repo.load_monthly() == []


def test_unreadable_history_is_not_overwritten_by_daily_rollover(clock) -> None:
    store = FailingStore()
    repo = TierRepository(store)
    repo.save(Tier.HISTORY, [make_day("2025-03-01"), make_day("2025-03-02"), make_day("2025-03-03")])
    repo.save(Tier.TODAY, [make_reading("2025-03-14T08:00:00.000Z"), make_reading("2025-03-15T08:00:00.000Z")])
    store.fail_get = {Tier.HISTORY.value}

    assert RolloverManager(repo, clock).roll_today("2025-03-15") == (0, [])

    store.fail_get = set()
    assert [d.date for d in repo.load_history()] == ["2025-03-01", "2025-03-02", "2025-03-03"]
    assert len(repo.load_readings()) == 2


def test_unreadable_monthly_is_not_overwritten_by_monthly_rollover(clock) -> None:
    store = FailingStore()
    repo = TierRepository(store)
    repo.save(Tier.MONTHLY, [MonthlyAggregateModel(month="2025-01", co=1.0, dayCount=31)])
    repo.save(Tier.HISTORY, [make_day("2025-02-10"), make_day("2025-03-10")])
    store.fail_get = {Tier.MONTHLY.value}

    report = RolloverManager(repo, clock).run()

    assert report.days_archived == 0
    store.fail_get = set()
    assert [m.month for m in repo.load_monthly()] == ["2025-01"]
    assert [d.date for d in repo.load_history()] == ["2025-02-10", "2025-03-10"]


def test_manual_saves_abort_when_destination_is_unreadable(clock) -> None:
    store = FailingStore()
    repo = TierRepository(store)
    repo.save(Tier.TODAY, [make_reading("2025-03-15T08:00:00.000Z")])
    repo.save(Tier.HISTORY, [make_day("2025-03-01"), make_day("2025-03-02")])
    repo.save(Tier.MONTHLY, [MonthlyAggregateModel(month="2025-01", dayCount=31)])
    manager = RolloverManager(repo, clock)

    store.fail_get = {Tier.HISTORY.value}
    assert manager.save_daily_average().outcome == SaveOutcome.STORAGE_UNAVAILABLE
    store.fail_get = {Tier.MONTHLY.value}
    assert manager.save_monthly_average().outcome == SaveOutcome.STORAGE_UNAVAILABLE

    store.fail_get = set()
    assert len(repo.load_readings()) == 1
    assert [d.date for d in repo.load_history()] == ["2025-03-01", "2025-03-02"]
    assert [m.month for m in repo.load_monthly()] == ["2025-01"]


def test_manual_daily_save_reports_when_today_cannot_be_cleared(clock) -> None:
    store = FailingStore()
    repo = TierRepository(store)
    repo.save(Tier.TODAY, [make_reading("2025-03-15T08:00:00.000Z", co=2)])
    store.fail_set = {Tier.TODAY.value}

    result = RolloverManager(repo, clock).save_daily_average()

    assert result.ok
    assert result.message == "Average saved to history, but today's data could not be cleared"
    assert [d.date for d in repo.load_history()] == ["2025-03-15"]
    assert len(repo.load_readings()) == 1


def test_manual_monthly_save_reports_when_history_cannot_be_cleared(clock) -> None:
    store = FailingStore()
    repo = TierRepository(store)
    repo.save(Tier.HISTORY, [make_day("2025-03-01", co=2), make_day("2025-03-02", co=4)])
    store.fail_set = {Tier.HISTORY.value}

    result = RolloverManager(repo, clock).save_monthly_average()

    assert result.ok
    assert result.message == "Monthly average saved (2 days averaged), but this month's data could not be cleared"
    assert len(repo.load_history()) == 2
