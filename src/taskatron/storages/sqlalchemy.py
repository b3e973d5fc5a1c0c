from datetime import datetime, timezone
from typing import Any, List, Optional

from sqlalchemy import create_engine, select, Column, String, DateTime, JSON
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from taskatron.domain.run import TaskData, TaskRun, TaskStatus
from taskatron.storages.protocol import Storage

Base = declarative_base()

class TaskDataModel(Base):
    __tablename__ = 'task_data'

    task_id = Column(String, primary_key=True)
    status = Column(String, nullable=False)
    runs = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)

class ValueModel(Base):
    __tablename__ = 'kv_values'

    key = Column(String, primary_key=True)
    value = Column(JSON)

class SqlAlchemyStorage(Storage):
    """
    Storage backed by any database SQLAlchemy can reach with a synchronous driver.
    Runs are kept as a JSON column on the task row, so a task record is always
    written in one statement.
    """

    def __init__(self, db_url: str, **engine_kwargs: Any):
        self.engine = create_engine(db_url, **engine_kwargs)
        self.session = sessionmaker(self.engine, expire_on_commit=False)

    def create_tables(self) -> None:
        Base.metadata.create_all(self.engine)

    def get_task_data(self, task_id: str) -> Optional[TaskData]:
        with self.session() as session:
            db_task = session.get(TaskDataModel, task_id)
            if db_task:
                return self._db_to_task_data(db_task)
            return None

    def set_task_data(self, task_id: str, data: TaskData) -> None:
        with self.session() as session:
            db_task = session.get(TaskDataModel, task_id)
            if db_task is None:
                db_task = TaskDataModel(task_id=task_id, created_at=datetime.now(timezone.utc))
                session.add(db_task)
            db_task.status = data.status.value
            db_task.runs = [run.model_dump(mode="json") for run in data.runs]
            session.commit()

    def list_task_ids(self) -> List[str]:
        with self.session() as session:
            result = session.execute(
                select(TaskDataModel.task_id).order_by(TaskDataModel.created_at, TaskDataModel.task_id)
            )
            return list(result.scalars())

    def get_value(self, key: str) -> Optional[Any]:
        with self.session() as session:
            db_value = session.get(ValueModel, key)
            return db_value.value if db_value else None

    def set_value(self, key: str, value: Any) -> None:
        with self.session() as session:
            db_value = session.get(ValueModel, key)
            if db_value is None:
                session.add(ValueModel(key=key, value=value))
            else:
                db_value.value = value
            session.commit()

    def _db_to_task_data(self, db_task: TaskDataModel) -> TaskData:
        return TaskData(
            status=TaskStatus(db_task.status),
            runs=[TaskRun.model_validate(run) for run in db_task.runs or []],
        )


class SqliteMemoryStorage(SqlAlchemyStorage):
    def __init__(self):
        super().__init__(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        self.create_tables()
