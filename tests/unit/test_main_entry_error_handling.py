import io
import os
import sys
from pathlib import Path
import unittest
from unittest import mock

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

import warband.__main__ as runtime_main


class _MemoryStore:
    def __init__(self) -> None:
        self.cleared = 0

    def load(self):
        return None

    def save(self, snapshot) -> None:
        return None

    def clear(self) -> None:
        self.cleared += 1


class MainEntryErrorHandlingTests(unittest.TestCase):
    def setUp(self) -> None:
        self.store = _MemoryStore()
        patches = [
            mock.patch.object(runtime_main, "load_dotenv"),
            mock.patch.object(runtime_main, "create_snapshot_store", return_value=self.store),
            mock.patch.dict(os.environ, {}, clear=False),
        ]
        for patcher in patches:
            patcher.start()
            self.addCleanup(patcher.stop)

    def test_main_handles_runtime_exceptions_without_traceback(self) -> None:
        output = io.StringIO()
        with mock.patch.object(runtime_main, "create_game_service", side_effect=RuntimeError("provider unavailable")), mock.patch(
            "sys.stdout", output
        ):
            runtime_main.main([])

        text = output.getvalue()
        self.assertIn("An unexpected error occurred", text)
        self.assertIn("provider unavailable", text)
        self.assertIn("Help:", text)
        self.assertNotIn("Traceback", text)

    def test_main_handles_keyboard_interrupt(self) -> None:
        output = io.StringIO()
        with mock.patch.object(runtime_main, "create_game_service", side_effect=KeyboardInterrupt), mock.patch(
            "sys.stdout", output
        ):
            runtime_main.main([])

        self.assertIn("Session ended", output.getvalue())

    def test_main_handles_closed_input(self) -> None:
        output = io.StringIO()
        with mock.patch.object(runtime_main, "create_game_service", return_value=object()), mock.patch.object(
            runtime_main, "run_cli", side_effect=EOFError
        ), mock.patch("sys.stdout", output):
            runtime_main.main([])

        self.assertIn("Session ended", output.getvalue())

    def test_new_flag_clears_save_and_seed_flag_is_exported(self) -> None:
        service = object()
        with mock.patch.object(runtime_main, "create_game_service", return_value=service), mock.patch.object(
            runtime_main, "run_cli"
        ) as run_mock:
            runtime_main.main(["--new", "--seed", "42"])

        self.assertEqual(1, self.store.cleared)
        self.assertEqual("42", os.environ["WARBAND_SEED"])
        run_mock.assert_called_once_with(service, self.store)


if __name__ == "__main__":
    unittest.main()
