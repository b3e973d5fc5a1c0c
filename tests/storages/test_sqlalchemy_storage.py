import pytest
from datetime import datetime, timedelta, timezone

from taskatron.domain.run import LogEntry, LogType, TaskData, TaskRun, TaskStatus
from taskatron.storages.manager import TaskStatusManager
from taskatron.storages.sqlalchemy import SqlAlchemyStorage, SqliteMemoryStorage


@pytest.fixture(scope="function")
def sqlite_storage():
    return SqliteMemoryStorage()


def test_get_unknown_task_data(sqlite_storage: SqlAlchemyStorage):
    assert sqlite_storage.get_task_data("missing") is None
    assert sqlite_storage.list_task_ids() == []


def test_set_and_get_task_data(sqlite_storage: SqlAlchemyStorage):
    start = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    run = TaskRun(
        id="run_1",
        start_time=start,
        end_time=start + timedelta(seconds=3),
        logs=[
            LogEntry(type=LogType.SYSTEM, timestamp=start, message="Task started"),
            LogEntry(type=LogType.ERROR, timestamp=start + timedelta(seconds=3), message="boom"),
        ],
    )
    data = TaskData(status=TaskStatus.FAILED, runs=[run])

    sqlite_storage.set_task_data("test_task_1", data)

    retrieved = sqlite_storage.get_task_data("test_task_1")
    assert retrieved is not None
    assert retrieved.status == TaskStatus.FAILED
    assert len(retrieved.runs) == 1
    assert retrieved.runs[0].id == "run_1"
    assert retrieved.runs[0].start_time == start
    assert retrieved.runs[0].end_time == start + timedelta(seconds=3)
    assert [entry.message for entry in retrieved.runs[0].logs] == ["Task started", "boom"]
    assert retrieved.runs[0].logs[1].type == LogType.ERROR


def test_set_task_data_replaces_record(sqlite_storage: SqlAlchemyStorage):
    sqlite_storage.set_task_data("test_task_2", TaskData(status=TaskStatus.RUNNING, runs=[TaskRun(), TaskRun()]))
    sqlite_storage.set_task_data("test_task_2", TaskData(status=TaskStatus.IDLE))

    retrieved = sqlite_storage.get_task_data("test_task_2")
    assert retrieved.status == TaskStatus.IDLE
    assert retrieved.runs == []
    assert sqlite_storage.list_task_ids() == ["test_task_2"]


def test_list_task_ids(sqlite_storage: SqlAlchemyStorage):
    for task_id in ["b_task", "a_task", "c_task"]:
        sqlite_storage.set_task_data(task_id, TaskData())
    sqlite_storage.set_task_data("a_task", TaskData(status=TaskStatus.DONE))

    assert sorted(sqlite_storage.list_task_ids()) == ["a_task", "b_task", "c_task"]


def test_values(sqlite_storage: SqlAlchemyStorage):
    assert sqlite_storage.get_value("last_sync") is None

    sqlite_storage.set_value("last_sync", {"at": "2024-05-01T12:00:00Z", "rows": 10})
    assert sqlite_storage.get_value("last_sync") == {"at": "2024-05-01T12:00:00Z", "rows": 10}

    sqlite_storage.set_value("last_sync", [1, 2, 3])
    assert sqlite_storage.get_value("last_sync") == [1, 2, 3]


def test_status_manager_on_sqlite(sqlite_storage: SqlAlchemyStorage):
    manager = TaskStatusManager(sqlite_storage)

    manager.transition("test_task_3", TaskStatus.STARTING, "Task started")
    manager.append_log("test_task_3", LogType.INFO, "working")
    manager.transition("test_task_3", TaskStatus.FINISHING, "Task finished")

    assert manager.get_status("test_task_3") == TaskStatus.DONE
    run = manager.last_run("test_task_3")
    assert run.end_time is not None
    assert [entry.message for entry in run.logs] == ["Task started", "working", "Task finished"]


def test_file_database_persists_across_instances(tmp_path):
    db_url = f"sqlite:///{tmp_path / 'taskatron.db'}"
    first = SqlAlchemyStorage(db_url)
    first.create_tables()
    TaskStatusManager(first).transition("persisted", TaskStatus.STARTING, "Task started")
    first.engine.dispose()

    second = SqlAlchemyStorage(db_url)
    manager = TaskStatusManager(second)
    assert manager.get_status("persisted") == TaskStatus.RUNNING
    assert len(manager.list_runs("persisted")) == 1
    second.engine.dispose()
