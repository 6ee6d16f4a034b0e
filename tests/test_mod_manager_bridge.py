#!/usr/bin/env python3
"""
Unit tests for ui/mod_manager_bridge.py
Signals are connected on the test thread, so they fire synchronously.
"""

import unittest
import logging
from pathlib import Path
from unittest.mock import MagicMock

import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from PyQt6.QtCore import QCoreApplication

from external_tools import ExternalToolError
from mod_manager import ModManager
from mods_list import ContentEntry, LoadOrderState
from mods_list_manager import DataNotFoundError
from ui.mod_manager_bridge import LogSignalHandler, ModManagerBridge, ToolWorker


app = QCoreApplication.instance() or QCoreApplication(sys.argv)


class TestModManagerBridge(unittest.TestCase):
    """Tests for ModManagerBridge."""

    def setUp(self):
        self.manager = MagicMock(spec=ModManager)
        self.unsubscribe = MagicMock()
        self.manager.add_mods_change_listener.return_value = self.unsubscribe
        self.bridge = ModManagerBridge(self.manager)

        self.failed = []
        self.finished = []
        self.bridge.operation_failed.connect(lambda op, msg: self.failed.append((op, msg)))
        self.bridge.operation_finished.connect(self.finished.append)

    def tearDown(self):
        self.bridge.cleanup()

    def test_state_changes_forwarded(self):
        """Test manager change callbacks become state_changed signals."""
        received = []
        self.bridge.state_changed.connect(received.append)
        callback = self.manager.add_mods_change_listener.call_args[0][0]

        state = LoadOrderState(content=(ContentEntry.for_file("A.esp", "/m"),))
        callback(state)

        self.assertEqual(received, [state])

    def test_command_success(self):
        """Test a quick command runs and reports completion."""
        self.assertTrue(self.bridge.toggle_content("A.esp"))

        self.manager.toggle_content.assert_called_once_with("A.esp")
        self.assertEqual(self.finished, ["toggle-content"])
        self.assertEqual(self.failed, [])

    def test_command_error_emitted(self):
        """Test a failing command is reported instead of raised."""
        self.manager.toggle_data.side_effect = DataNotFoundError("/mods/x")

        self.assertFalse(self.bridge.toggle_data("/mods/x"))

        self.assertEqual(self.failed, [("toggle-data", "Data folder not found: /mods/x")])
        self.assertEqual(self.finished, [])

    def test_busy_refuses_commands(self):
        """Test nothing runs while a long operation is in progress."""
        worker = MagicMock()
        worker.isRunning.return_value = True
        worker.operation = "sort-content"
        self.bridge._worker = worker

        self.assertTrue(self.bridge.is_busy)
        self.assertFalse(self.bridge.add_data(["/mods/x"]))
        self.assertIsNone(self.bridge.launch_openmw())

        self.manager.add_data.assert_not_called()
        self.assertEqual(self.failed, [
            ("add-data", "Busy with sort-content"),
            ("launch-openmw", "Busy with sort-content"),
        ])

    def test_check_file_overrides_error(self):
        """Test an unreadable folder yields an empty result and a signal."""
        self.manager.check_file_overrides.side_effect = FileNotFoundError("gone")

        self.assertEqual(self.bridge.check_file_overrides(), {})
        self.assertEqual(self.failed[0][0], "check-overrides")

    def test_cleanup_unsubscribes(self):
        """Test cleanup stops forwarding manager changes."""
        self.bridge.cleanup()
        self.unsubscribe.assert_called_once_with()

    def test_application_log_forwarded(self):
        """Test application log records arrive as message_logged until cleanup."""
        messages = []
        self.bridge.message_logged.connect(lambda level, msg: messages.append((level, msg)))
        log = logging.getLogger("omwmodmanager.mlox")

        log.warning("mlox did not propose a load order")
        self.bridge.cleanup()
        log.warning("after cleanup")

        self.assertEqual(messages, [("warning", "mlox did not propose a load order")])


class TestToolWorker(unittest.TestCase):
    """Tests for ToolWorker.run, called on the test thread."""

    def test_success_signal(self):
        """Test the result is emitted with the operation name."""
        results = []
        worker = ToolWorker("sort-content", lambda: True)
        worker.succeeded.connect(lambda op, result: results.append((op, result)))

        worker.run()

        self.assertEqual(results, [("sort-content", True)])

    def test_failure_signal(self):
        """Test tool errors are emitted, not raised."""
        errors = []

        def fail():
            raise ExternalToolError("mlox exited with code 1", returncode=1)

        worker = ToolWorker("sort-content", fail)
        worker.failed.connect(lambda op, msg: errors.append((op, msg)))

        worker.run()

        self.assertEqual(errors, [("sort-content", "mlox exited with code 1")])


class TestLogSignalHandler(unittest.TestCase):
    """Tests for LogSignalHandler."""

    def test_records_emitted(self):
        """Test log records arrive as (level, message) signals."""
        messages = []
        handler = LogSignalHandler()
        handler.setFormatter(logging.Formatter("%(message)s"))
        handler.emitter.message_logged.connect(lambda level, msg: messages.append((level, msg)))

        logger = logging.getLogger("omwmodmanager.test_bridge")
        logger.addHandler(handler)
        logger.setLevel(logging.DEBUG)
        try:
            logger.info("Running mlox...")
            logger.debug("hidden below handler level")
        finally:
            logger.removeHandler(handler)

        self.assertEqual(messages, [("info", "Running mlox...")])


if __name__ == "__main__":
    unittest.main()
