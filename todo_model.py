"""Task list model for the Today's Tasks app.

The model owns the ordered task list and the single inline edit session.
Every mutation schedules a save through a zero-interval single-shot timer,
so writes happen once control returns to the event loop and several changes
made in one turn end up in one write.
"""

import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from PySide6.QtCore import (
    QAbstractListModel,
    QModelIndex,
    QObject,
    Qt,
    QTimer,
    Signal,
    Slot,
    Property,
)
from todo_store import (
    STORAGE_KEY,
    KeyValueStore,
    MemoryStore,
    StoreError,
    decode_tasks,
    encode_tasks,
    normalize_tasks,
)


@dataclass
class Task:
    """A single to-do item."""
    id: str
    text: str
    completed: bool = False


@dataclass
class EditSession:
    """Inline edit in progress: which task and the text typed so far."""
    task_id: str
    draft: str


class TodoModel(QAbstractListModel):
    """Qt model holding the task list, the edit session and persistence."""

    TaskIdRole = Qt.UserRole + 1
    TextRole = Qt.UserRole + 2
    CompletedRole = Qt.UserRole + 3
    EditingRole = Qt.UserRole + 4

    taskCountChanged = Signal()
    completedCountChanged = Signal()
    editingChanged = Signal()
    loadCompleted = Signal()
    saveCompleted = Signal()
    storageError = Signal(str, arguments=["message"])

    def __init__(
        self,
        store: Optional[KeyValueStore] = None,
        tasks: Optional[List[Task]] = None,
        storage_key: str = STORAGE_KEY,
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)
        self._store: KeyValueStore = store if store is not None else MemoryStore()
        self._storage_key = storage_key
        self._tasks: List[Task] = self._build_tasks(
            {"id": t.id, "text": t.text, "completed": t.completed} for t in tasks or []
        )
        self._session: Optional[EditSession] = None
        self._last_id = 0
        for task in self._tasks:
            self._track_id(task.id)
        self._save_pending = False
        self._save_timer = QTimer(self)
        self._save_timer.setSingleShot(True)
        self._save_timer.setInterval(0)
        self._save_timer.timeout.connect(self._performSave)

    # Qt model API

    def rowCount(self, parent: Optional[QModelIndex] = QModelIndex()) -> int:  # type: ignore[override]
        if parent is not None and parent.isValid():
            return 0
        return len(self._tasks)

    def data(self, index: QModelIndex, role: int = Qt.DisplayRole):  # type: ignore[override]
        if not index.isValid() or not (0 <= index.row() < len(self._tasks)):
            return None

        task = self._tasks[index.row()]
        if role == self.TaskIdRole:
            return task.id
        elif role == self.TextRole or role == Qt.DisplayRole:
            return task.text
        elif role == self.CompletedRole:
            return task.completed
        elif role == self.EditingRole:
            return self._session is not None and self._session.task_id == task.id
        return None

    def roleNames(self):  # type: ignore[override]
        return {
            self.TaskIdRole: b"taskId",
            self.TextRole: b"text",
            self.CompletedRole: b"completed",
            self.EditingRole: b"editing",
        }

    # Aggregates for the header

    @Property(int, notify=taskCountChanged)
    def taskCount(self) -> int:
        return len(self._tasks)

    @Property(int, notify=completedCountChanged)
    def completedCount(self) -> int:
        return sum(1 for task in self._tasks if task.completed)

    @Property(bool, notify=completedCountChanged)
    def hasCompleted(self) -> bool:
        return any(task.completed for task in self._tasks)

    @Property(str, notify=editingChanged)
    def editingTaskId(self) -> str:
        return self._session.task_id if self._session is not None else ""

    @Property(str, notify=editingChanged)
    def editDraft(self) -> str:
        return self._session.draft if self._session is not None else ""

    @property
    def edit_session(self) -> Optional[EditSession]:
        return self._session

    @property
    def save_pending(self) -> bool:
        return self._save_pending

    def tasks(self) -> List[Task]:
        """Return a copy of the current list."""
        return [Task(id=t.id, text=t.text, completed=t.completed) for t in self._tasks]

    # Helpers

    def _row_of(self, task_id: str) -> int:
        for row, task in enumerate(self._tasks):
            if task.id == task_id:
                return row
        return -1

    def _track_id(self, task_id: str) -> None:
        if not task_id.isdecimal():
            return
        try:
            value = int(task_id)
        except ValueError:
            # Longer than int() will parse from a string
            return
        self._last_id = max(self._last_id, value)

    def _new_id(self) -> str:
        """Millisecond timestamp, bumped past the last id handed out."""
        candidate = int(time.time() * 1000)
        if candidate <= self._last_id:
            candidate = self._last_id + 1
        self._last_id = candidate
        return str(candidate)

    def _emitRowChanged(self, row: int, roles: List[int]) -> None:
        idx = self.index(row, 0)
        self.dataChanged.emit(idx, idx, roles)

    def _setSession(self, session: Optional[EditSession]) -> None:
        previous = self._session
        self._session = session
        for s in (previous, session):
            if s is None:
                continue
            row = self._row_of(s.task_id)
            if row >= 0:
                self._emitRowChanged(row, [self.EditingRole])
        self.editingChanged.emit()

    def _closeSessionFor(self, task_ids) -> None:
        if self._session is not None and self._session.task_id in task_ids:
            self._setSession(None)

    # Mutations

    @Slot(str, result=str)
    def addTask(self, raw_text: str) -> str:
        text = raw_text.strip()
        if not text:
            return ""

        task = Task(id=self._new_id(), text=text)
        row = len(self._tasks)
        self.beginInsertRows(QModelIndex(), row, row)
        self._tasks.append(task)
        self.endInsertRows()

        self.taskCountChanged.emit()
        self._scheduleSave()
        return task.id

    @Slot(str)
    def toggleComplete(self, task_id: str) -> None:
        row = self._row_of(task_id)
        if row < 0:
            return

        task = self._tasks[row]
        task.completed = not task.completed
        self._emitRowChanged(row, [self.CompletedRole])
        self.completedCountChanged.emit()
        self._scheduleSave()

    @Slot(str)
    def startEdit(self, task_id: str) -> None:
        row = self._row_of(task_id)
        if row < 0:
            return
        self._setSession(EditSession(task_id=task_id, draft=self._tasks[row].text))

    @Slot(str)
    def updateDraft(self, text: str) -> None:
        if self._session is None:
            return
        self._session.draft = text
        self.editingChanged.emit()

    @Slot()
    def confirmEdit(self) -> None:
        session = self._session
        if session is None:
            return

        value = session.draft.strip()
        row = self._row_of(session.task_id)
        if not value or row < 0:
            # Blank draft counts as cancel
            self._setSession(None)
            return

        self._tasks[row].text = value
        self._setSession(None)
        self._emitRowChanged(row, [self.TextRole])
        self._scheduleSave()

    @Slot()
    def cancelEdit(self) -> None:
        if self._session is not None:
            self._setSession(None)

    @Slot(str)
    def removeTask(self, task_id: str) -> None:
        row = self._row_of(task_id)
        if row < 0:
            return

        self._closeSessionFor({task_id})
        was_completed = self._tasks[row].completed
        self.beginRemoveRows(QModelIndex(), row, row)
        self._tasks.pop(row)
        self.endRemoveRows()

        self.taskCountChanged.emit()
        if was_completed:
            self.completedCountChanged.emit()
        self._scheduleSave()

    @Slot()
    def clearCompleted(self) -> None:
        removed_ids = {task.id for task in self._tasks if task.completed}
        if not removed_ids:
            return

        self._closeSessionFor(removed_ids)
        # Remove in reverse order to maintain indices
        for row in reversed(range(len(self._tasks))):
            if self._tasks[row].completed:
                self.beginRemoveRows(QModelIndex(), row, row)
                self._tasks.pop(row)
                self.endRemoveRows()

        self.taskCountChanged.emit()
        self.completedCountChanged.emit()
        self._scheduleSave()

    # Serialization

    def to_list(self) -> List[Dict[str, Any]]:
        """Serialize tasks to JSON-ready records."""
        return [{"id": t.id, "text": t.text, "completed": t.completed} for t in self._tasks]

    @staticmethod
    def _build_tasks(records) -> List[Task]:
        return [
            Task(id=r["id"], text=r["text"], completed=r["completed"])
            for r in normalize_tasks(records)
        ]

    def from_list(self, records: List[Dict[str, Any]]) -> None:
        """Replace the whole list with ``records`` (as produced by to_list).

        Records with blank text or an id already used earlier are dropped.
        """
        new_tasks = self._build_tasks(records)
        self.beginResetModel()
        self._tasks = new_tasks
        self._session = None
        self.endResetModel()
        for task in new_tasks:
            self._track_id(task.id)

        self.editingChanged.emit()
        self.taskCountChanged.emit()
        self.completedCountChanged.emit()

    # Persistence

    @Slot(result=bool)
    def load(self) -> bool:
        """Replace the list with the stored snapshot.

        Any failure leaves the current list untouched. Loading never
        schedules a save.
        """
        try:
            raw = self._store.get(self._storage_key)
            if raw is None:
                print(f"No saved tasks under {self._storage_key}")
                return False
            records = decode_tasks(raw)
        except StoreError as e:
            error_msg = f"Failed to load tasks: {e}"
            self.storageError.emit(error_msg)
            print(error_msg)
            return False

        self.from_list(records)
        self.loadCompleted.emit()
        print(f"Loaded {len(records)} tasks")
        return True

    def _scheduleSave(self) -> None:
        self._save_pending = True
        self._save_timer.start()

    @Slot()
    def flushPendingSave(self) -> None:
        """Write a pending save now instead of waiting for the event loop."""
        if self._save_pending:
            self._save_timer.stop()
            self._performSave()

    def _performSave(self) -> None:
        self._save_pending = False
        try:
            self._store.set(self._storage_key, encode_tasks(self.to_list()))
        except StoreError as e:
            error_msg = f"Failed to save tasks: {e}"
            self.storageError.emit(error_msg)
            print(error_msg)
            return
        print(f"Tasks saved under {self._storage_key} ({len(self._tasks)} tasks)")
        self.saveCompleted.emit()
