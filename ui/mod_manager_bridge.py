"""
Qt bridge for OMWModManager
Exposes ModManager commands to the Qt UI, forwards state changes and
log messages as signals, and runs long tool invocations off the UI thread.
"""

import logging
from typing import Any, Callable, Optional, Sequence

from PyQt6.QtCore import QObject, QThread, pyqtSignal

from external_tools import ExternalToolError
from logger import attach_handler
from mod_manager import ModManager, ToolPathError
from mods_list import ContentEntry, DataEntry, LoadOrderState
from mods_list_manager import ModsListError
from state_store import NotInitializedError

log = logging.getLogger("omwmodmanager.ui.bridge")

# Errors reported to the UI instead of crashing the event loop
OPERATION_ERRORS = (ModsListError, NotInitializedError, ExternalToolError, ToolPathError, OSError, UnicodeError)


class ToolWorker(QThread):
    """Background thread for a blocking ModManager call."""

    succeeded = pyqtSignal(str, object)  # operation, result
    failed = pyqtSignal(str, str)  # operation, error message

    def __init__(self, operation: str, func: Callable[[], Any], parent=None):
        super().__init__(parent)
        self.operation = operation
        self._func = func

    def run(self):
        try:
            result = self._func()
        except OPERATION_ERRORS as e:
            log.error(f"{self.operation} failed: {e}")
            self.failed.emit(self.operation, str(e))
            return
        self.succeeded.emit(self.operation, result)


class LogEmitter(QObject):
    message_logged = pyqtSignal(str, str)  # level, message


class LogSignalHandler(logging.Handler):
    """Logging handler that re-emits records as a Qt signal."""

    def __init__(self, level=logging.INFO):
        super().__init__(level)
        self.emitter = LogEmitter()

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = self.format(record)
        except (TypeError, ValueError):
            self.handleError(record)
            return
        self.emitter.message_logged.emit(record.levelname.lower(), message)


class ModManagerBridge(QObject):
    """
    UI-facing wrapper around ModManager.

    Signals:
        state_changed(LoadOrderState): effective view after every change
        operation_started(str) / operation_finished(str)
        operation_failed(str, str): operation name, error message
        message_logged(str, str): level, message of application log records
    """

    state_changed = pyqtSignal(object)
    operation_started = pyqtSignal(str)
    operation_finished = pyqtSignal(str)
    operation_failed = pyqtSignal(str, str)
    message_logged = pyqtSignal(str, str)

    def __init__(self, manager: ModManager, parent=None):
        super().__init__(parent)
        self.manager = manager
        self._worker: Optional[ToolWorker] = None
        self._unsubscribe = manager.add_mods_change_listener(self.state_changed.emit)

        self.log_handler = LogSignalHandler()
        self.log_handler.emitter.message_logged.connect(self.message_logged)
        self._detach_log_handler = attach_handler(self.log_handler)

    @property
    def is_busy(self) -> bool:
        return self._worker is not None and self._worker.isRunning()

    def _call(self, operation: str, func: Callable[[], Any]) -> bool:
        """Run a quick command on the calling thread, reporting errors as signals."""
        if self.is_busy:
            self.operation_failed.emit(operation, f"Busy with {self._worker.operation}")
            return False
        try:
            func()
        except OPERATION_ERRORS as e:
            log.error(f"{operation} failed: {e}")
            self.operation_failed.emit(operation, str(e))
            return False
        self.operation_finished.emit(operation)
        return True

    def _start_worker(self, operation: str, func: Callable[[], Any]) -> Optional[ToolWorker]:
        """Run a long command on a ToolWorker. Only one may run at a time."""
        if self.is_busy:
            self.operation_failed.emit(operation, f"Busy with {self._worker.operation}")
            return None

        worker = ToolWorker(operation, func, self)
        worker.succeeded.connect(self._on_worker_succeeded)
        worker.failed.connect(self.operation_failed)
        worker.finished.connect(self._cleanup_worker)
        self._worker = worker
        self.operation_started.emit(operation)
        worker.start()
        return worker

    def _on_worker_succeeded(self, operation: str, _result: object) -> None:
        self.operation_finished.emit(operation)

    def _cleanup_worker(self) -> None:
        if self._worker is not None:
            self._worker.deleteLater()
            self._worker = None

    # ==================== COMMANDS ====================

    def current_state(self) -> LoadOrderState:
        return self.manager.get_data_for_ui()

    def add_data(self, data_folder_paths: Sequence[str], insert_index: Optional[int] = None) -> bool:
        return self._call("add-data", lambda: self.manager.add_data(data_folder_paths, insert_index))

    def remove_data(self, data_ids: Sequence[str]) -> bool:
        return self._call("remove-data", lambda: self.manager.remove_data(data_ids))

    def toggle_data(self, data_id: str) -> bool:
        return self._call("toggle-data", lambda: self.manager.toggle_data(data_id))

    def reorder_data(self, data: Sequence[DataEntry]) -> bool:
        return self._call("reorder-data", lambda: self.manager.reorder_data(data))

    def toggle_content(self, content_id: str) -> bool:
        return self._call("toggle-content", lambda: self.manager.toggle_content(content_id))

    def reorder_content(self, content: Sequence[ContentEntry]) -> bool:
        return self._call("reorder-content", lambda: self.manager.reorder_content(content))

    def save_openmw_config(self) -> bool:
        return self._call("save-config", self.manager.update_openmw_config)

    def check_file_overrides(self) -> dict[str, list[str]]:
        try:
            return self.manager.check_file_overrides()
        except OPERATION_ERRORS as e:
            self.operation_failed.emit("check-overrides", str(e))
            return {}

    def sort_content(self) -> Optional[ToolWorker]:
        return self._start_worker("sort-content", self.manager.sort_content)

    def launch_openmw(self) -> Optional[ToolWorker]:
        return self._start_worker("launch-openmw", self.manager.run_openmw)

    def cleanup(self) -> None:
        """Stop listening to the manager and the log, wait for a running worker."""
        self._unsubscribe()
        self._detach_log_handler()
        if self._worker is not None:
            self._worker.wait()
